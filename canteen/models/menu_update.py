"""Append-only audit trail of availability changes."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from canteen.db.base import Base

MENU_UPDATE_ACTIONS = ("added", "removed")


class MenuUpdate(Base):
    """One availability change, with admin and item names copied in at write time."""

    __tablename__ = "menu_updates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    admin_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    admin_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(Enum(*MENU_UPDATE_ACTIONS, name="menu_update_action"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )

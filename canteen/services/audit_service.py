"""Menu update audit log helpers."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from canteen.models.menu_update import MenuUpdate


def record_menu_update(
    db: Session,
    *,
    admin_id: str,
    admin_name: str,
    item_id: int,
    item_name: str,
    is_available: bool,
) -> MenuUpdate:
    """Stage one audit row; the caller commits it with the change it describes."""
    update = MenuUpdate(
        admin_id=admin_id,
        admin_name=admin_name,
        item_id=item_id,
        item_name=item_name,
        action="added" if is_available else "removed",
    )
    db.add(update)
    return update


def list_recent_updates(db: Session, limit: int) -> list[MenuUpdate]:
    """Return at most ``limit`` audit rows, newest first."""
    if limit < 1:
        raise ValueError("limit must be at least 1")
    return list(
        db.scalars(
            select(MenuUpdate).order_by(MenuUpdate.created_at.desc(), MenuUpdate.id.desc()).limit(limit)
        ).all()
    )

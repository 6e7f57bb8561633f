"""Menu catalog read helpers shared by API and HTML routes."""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from canteen.models.menu import MenuItem
from canteen.schemas.menu import MenuItemRead


def list_menu_items(db: Session) -> list[MenuItem]:
    """Return every catalog row ordered by category, then name."""
    return list(
        db.scalars(
            select(MenuItem).order_by(MenuItem.category.asc(), MenuItem.name.asc(), MenuItem.id.asc())
        ).all()
    )


def get_menu_item(db: Session, item_id: int) -> MenuItem | None:
    return db.get(MenuItem, item_id)


def create_menu_item(db: Session, *, name: str, category: str, image: str = "", is_available: bool = False) -> MenuItem:
    """Create and persist a catalog item."""
    name = name.strip()
    category = category.strip()
    if not name:
        raise ValueError("Name is required")
    if not category:
        raise ValueError("Category is required")
    item = MenuItem(name=name, category=category, image=image, is_available=is_available)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def group_by_category(items: Iterable[MenuItemRead], *, available_only: bool = False) -> dict[str, list[MenuItemRead]]:
    """Group items for display, keeping the incoming order within and across groups."""
    grouped: dict[str, list[MenuItemRead]] = {}
    for item in items:
        if available_only and not item.is_available:
            continue
        grouped.setdefault(item.category, []).append(item)
    return grouped

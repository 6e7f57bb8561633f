"""Database seeding helpers."""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from canteen.core.config import settings
from canteen.models.menu import MenuItem

logger = logging.getLogger(__name__)

DEFAULT_MENU: tuple[tuple[str, str, str], ...] = (
    ("Breakfast", "Idli Sambar", "images/idli-sambar.jpg"),
    ("Breakfast", "Masala Dosa", "images/masala-dosa.jpg"),
    ("Breakfast", "Poori Masala", "images/poori-masala.jpg"),
    ("Breakfast", "Upma", "images/upma.jpg"),
    ("Meals", "Veg Meals", "images/veg-meals.jpg"),
    ("Meals", "Chicken Biryani", "images/chicken-biryani.jpg"),
    ("Meals", "Curd Rice", "images/curd-rice.jpg"),
    ("Snacks", "Samosa", "images/samosa.jpg"),
    ("Snacks", "Medu Vada", "images/medu-vada.jpg"),
    ("Beverages", "Filter Coffee", "images/filter-coffee.jpg"),
    ("Beverages", "Masala Chai", "images/masala-chai.jpg"),
    ("Beverages", "Fresh Lime Soda", "images/lime-soda.jpg"),
)


def ensure_menu_seed(session: Session) -> int:
    """Insert the default canteen menu into an empty catalog in development only.

    Returns:
        int: number of rows inserted.
    """
    if settings.app_env != "dev" or not settings.seed_menu:
        return 0

    existing = session.scalar(select(func.count()).select_from(MenuItem)) or 0
    if existing:
        return 0

    for category, name, image in DEFAULT_MENU:
        session.add(MenuItem(name=name, category=category, image=image, is_available=False))
    session.commit()
    logger.info("[BOOTSTRAP] Seeded %d default menu items", len(DEFAULT_MENU))
    return len(DEFAULT_MENU)

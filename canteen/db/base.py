"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from canteen.models import admin as _admin  # noqa: E402,F401
from canteen.models import identity as _identity  # noqa: E402,F401
from canteen.models import menu as _menu  # noqa: E402,F401
from canteen.models import menu_update as _menu_update  # noqa: E402,F401

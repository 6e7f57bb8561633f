"""Application models package."""

from canteen.models.admin import ADMIN_ROLES, Admin
from canteen.models.identity import AuthSession, AuthUser
from canteen.models.menu import MenuItem
from canteen.models.menu_update import MENU_UPDATE_ACTIONS, MenuUpdate

__all__ = ["Admin", "ADMIN_ROLES", "AuthUser", "AuthSession", "MenuItem", "MenuUpdate", "MENU_UPDATE_ACTIONS"]

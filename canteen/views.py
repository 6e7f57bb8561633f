"""View state transitions for the public, login and admin screens."""

from __future__ import annotations

from enum import Enum

from canteen.core.errors import MSG_UNPROVISIONED_ADMIN, InvalidTransitionError
from canteen.schemas.results import OperationResult
from canteen.services.session_service import SessionAdapter


class ViewState(str, Enum):
    HOME = "home"
    LOGIN = "login"
    ADMIN = "admin"


ALLOWED_TRANSITIONS: dict[ViewState, set[ViewState]] = {
    ViewState.HOME: {ViewState.LOGIN},
    ViewState.LOGIN: {ViewState.ADMIN, ViewState.HOME},
    ViewState.ADMIN: {ViewState.HOME},
}


def can_transition(current: ViewState, new: ViewState) -> bool:
    """Return whether the view can move from current to new state."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


class ViewNavigator:
    """Current screen for one client, with the admin guard applied on read."""

    def __init__(self, auth: SessionAdapter, state: ViewState = ViewState.HOME) -> None:
        self.auth = auth
        self._state = state
        self.error: str | None = None

    @property
    def state(self) -> ViewState:
        """Effective state; admin without a session and resolved admin reads as home."""
        if self._state is ViewState.ADMIN and not self.auth.is_authenticated:
            return ViewState.HOME
        return self._state

    def _move(self, new: ViewState, via: str) -> ViewState:
        current = self.state
        if not can_transition(current, new):
            raise InvalidTransitionError(current.value, via)
        self._state = new
        return new

    def request_admin_access(self) -> ViewState:
        self.error = None
        return self._move(ViewState.LOGIN, "request_admin_access")

    def complete_login(self, result: OperationResult) -> ViewState:
        """Enter admin only when sign-in worked and resolved to an active admin."""
        if self.state is not ViewState.LOGIN:
            raise InvalidTransitionError(self.state.value, "complete_login")
        if not result.success:
            self.error = result.error or "Authentication failed"
            return self._state
        if not self.auth.is_authenticated:
            lookup = self.auth.lookup
            self.error = lookup.error if lookup.error else MSG_UNPROVISIONED_ADMIN
            return self._state
        self.error = None
        return self._move(ViewState.ADMIN, "complete_login")

    def back(self) -> ViewState:
        if self.state is not ViewState.LOGIN:
            raise InvalidTransitionError(self.state.value, "back")
        self.error = None
        return self._move(ViewState.HOME, "back")

    def logout(self) -> OperationResult:
        """Leave admin and end the identity session."""
        if self._state is not ViewState.ADMIN:
            raise InvalidTransitionError(self.state.value, "logout")
        result = self.auth.sign_out()
        self._state = ViewState.HOME
        return result

"""Error taxonomy shared by services, API routes and pages."""

from __future__ import annotations

# User-facing messages
MSG_NOT_CONFIGURED = (
    "Database connection required. Set CANTEEN_SERVICE_URL and CANTEEN_ANON_KEY "
    "and restart the application."
)
MSG_UNPROVISIONED_ADMIN = (
    "You are signed in, but this account is not registered as an active admin. "
    "Ask an existing admin to activate it."
)
MSG_SESSION_RESTORE_FAILED = "Could not restore your session. Please sign in again."
MSG_ITEM_NOT_FOUND = "Menu item not found"


class CanteenError(Exception):
    """Base class for application errors."""


class ConfigurationError(CanteenError):
    """Connection parameters are missing, placeholders or malformed."""


class IdentityError(CanteenError):
    """Identity provider rejected an operation."""


class InvalidTransitionError(CanteenError):
    """View state machine was asked for a transition it does not allow."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot go from {current!r} via {requested!r}")
        self.current = current
        self.requested = requested

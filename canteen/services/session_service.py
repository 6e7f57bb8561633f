"""Session/identity adapter: identity provider session plus admin directory lookup."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.core.config import settings
from canteen.core.errors import MSG_SESSION_RESTORE_FAILED, IdentityError
from canteen.schemas.auth import AdminRead, IdentitySession
from canteen.schemas.results import AdminLookup, OperationResult, WriteOutcome
from canteen.services.admin_service import create_admin, get_active_admin
from canteen.services.identity_provider import IdentityClient

logger = logging.getLogger(__name__)


class SessionAdapter:
    """Tracks one client's identity session and the admin it resolves to.

    The adapter listens to the identity client for its whole lifetime and
    re-resolves the admin row on every session change. ``close`` detaches it.
    """

    def __init__(
        self,
        identity: IdentityClient,
        session_factory: Callable[[], Session],
        *,
        restore_timeout: float | None = None,
    ) -> None:
        self.identity = identity
        self._session_factory = session_factory
        self.restore_timeout = (
            settings.session_restore_timeout_seconds if restore_timeout is None else restore_timeout
        )
        self.lookup: AdminLookup = AdminLookup()
        self.session_error: str | None = None
        self._subscription = identity.on_auth_state_change(self._handle_auth_change)

    @property
    def session(self) -> IdentitySession | None:
        return self.identity.get_session()

    @property
    def admin(self) -> AdminRead | None:
        return self.lookup.admin

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and self.lookup.found and self.lookup.admin.is_active

    def close(self) -> None:
        self._subscription.unsubscribe()

    def restore_session(self, access_token: str | None) -> IdentitySession | None:
        """Restore a stored session, waiting at most ``restore_timeout`` seconds.

        Fails open: any problem leaves the client signed out. Storage failures
        and timeouts are kept in ``session_error`` so the page can offer a retry;
        a stale or revoked token is simply a signed-out visitor.
        """
        self.session_error = None
        if not access_token:
            return None

        # One worker per restore: a hung verify elsewhere never eats this budget.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="session-restore")
        future = executor.submit(self.identity.verify, access_token)
        try:
            restored = future.result(timeout=self.restore_timeout)
        except FutureTimeoutError:
            logger.warning("[AUTH] Session restore timed out after %.1fs", self.restore_timeout)
            self.session_error = MSG_SESSION_RESTORE_FAILED
            return None
        except IdentityError as exc:
            logger.info("[AUTH] Stored session rejected: %s", exc)
            return None
        except SQLAlchemyError:
            logger.exception("[AUTH] Session restore failed")
            self.session_error = MSG_SESSION_RESTORE_FAILED
            return None
        finally:
            executor.shutdown(wait=False)

        return self.identity.adopt_session(restored)

    def resolve_admin(self, user_id: str) -> AdminLookup:
        try:
            with self._session_factory() as db:
                row = get_active_admin(db, user_id)
                admin = AdminRead.model_validate(row) if row is not None else None
        except SQLAlchemyError:
            logger.exception("[AUTH] Failed to fetch admin profile for user_id=%s", user_id)
            self.lookup = AdminLookup(error="Could not load admin profile")
            return self.lookup

        if admin is None:
            logger.info("[AUTH] Identity user_id=%s has no active admin profile", user_id)
            self.lookup = AdminLookup(unprovisioned=True)
        else:
            self.lookup = AdminLookup(admin=admin)
        return self.lookup

    def sign_in(self, email: str, password: str) -> OperationResult:
        try:
            self.identity.sign_in_with_password(email, password)
        except IdentityError as exc:
            return OperationResult.failed(str(exc))
        except SQLAlchemyError:
            logger.exception("[AUTH] Sign-in failed for email=%s", email)
            return OperationResult.failed("Login failed")
        return OperationResult.ok()

    def sign_up(self, email: str, password: str, name: str) -> OperationResult:
        """Create the identity, then the admin profile.

        The two writes are not atomic. A failed profile write leaves the identity
        in place and is reported with ``outcome=partial``.
        """
        if not (name or "").strip():
            return OperationResult.failed("Name is required")
        try:
            identity_session = self.identity.sign_up(email, password)
        except IdentityError as exc:
            return OperationResult.failed(str(exc))
        except SQLAlchemyError:
            logger.exception("[AUTH] Identity sign-up failed for email=%s", email)
            return OperationResult.failed("Registration failed")

        try:
            with self._session_factory() as db:
                create_admin(db, admin_id=identity_session.user_id, email=identity_session.email, name=name)
        except SQLAlchemyError:
            logger.exception(
                "[AUTH] Admin profile creation failed; identity user_id=%s left without profile",
                identity_session.user_id,
            )
            return OperationResult.failed("Account created but admin profile could not be saved", WriteOutcome.PARTIAL)

        self.resolve_admin(identity_session.user_id)
        return OperationResult.ok()

    def refresh_session(self) -> OperationResult:
        try:
            self.identity.refresh_session()
        except IdentityError as exc:
            return OperationResult.failed(str(exc))
        except SQLAlchemyError:
            logger.exception("[AUTH] Token refresh failed")
            return OperationResult.failed("Could not refresh session")
        return OperationResult.ok()

    def sign_out(self) -> OperationResult:
        try:
            self.identity.sign_out()
        except SQLAlchemyError:
            logger.exception("[AUTH] Sign-out failed")
            return OperationResult.failed("Logout failed")
        return OperationResult.ok()

    def _handle_auth_change(self, event_name: str, session: IdentitySession | None) -> None:
        logger.debug("[AUTH] Auth state change: %s", event_name)
        if session is None:
            self.lookup = AdminLookup()
            return
        self.resolve_admin(session.user_id)

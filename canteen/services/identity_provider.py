"""Identity provider client: email/password accounts and revocable sessions.

An ``IdentityClient`` plays the role of a hosted auth SDK. It holds at most one
signed-in session, talks to the ``auth_users``/``auth_sessions`` tables, and
tells listeners about every session change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from canteen.core.errors import IdentityError
from canteen.core.security import get_password_hash, issue_session_token, read_session_token, verify_password
from canteen.models.identity import AuthSession, AuthUser
from canteen.schemas.auth import IdentitySession

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"

AuthStateCallback = Callable[[str, IdentitySession | None], None]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthSubscription:
    """Handle returned by ``on_auth_state_change``."""

    def __init__(self, client: "IdentityClient", callback: AuthStateCallback) -> None:
        self._client = client
        self.callback = callback

    def unsubscribe(self) -> None:
        self._client._remove_listener(self)


class IdentityClient:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self.session: IdentitySession | None = None
        self._subscriptions: list[AuthSubscription] = []

    def on_auth_state_change(self, callback: AuthStateCallback) -> AuthSubscription:
        subscription = AuthSubscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def _remove_listener(self, subscription: AuthSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _emit(self, event_name: str) -> None:
        for subscription in list(self._subscriptions):
            subscription.callback(event_name, self.session)

    def get_session(self) -> IdentitySession | None:
        return self.session

    def verify(self, access_token: str) -> IdentitySession:
        """Check a token against the provider without adopting it."""
        with self._session_factory() as db:
            return self._verify(db, access_token)

    def adopt_session(self, session: IdentitySession) -> IdentitySession:
        self.session = session
        self._emit(INITIAL_SESSION)
        return session

    def get_user(self) -> IdentitySession:
        """Re-validate the held token; raises when signed out or revoked."""
        if self.session is None:
            raise IdentityError("Not signed in")
        return self.verify(self.session.access_token)

    def sign_up(self, email: str, password: str) -> IdentitySession:
        normalized = normalize_email(email)
        if "@" not in normalized:
            raise IdentityError("A valid email address is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise IdentityError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

        with self._session_factory() as db:
            existing = db.scalar(select(AuthUser).where(AuthUser.email == normalized).limit(1))
            if existing is not None:
                raise IdentityError("User already registered")
            user = AuthUser(email=normalized, password_hash=get_password_hash(password))
            db.add(user)
            try:
                db.flush()
            except IntegrityError as exc:
                db.rollback()
                raise IdentityError("User already registered") from exc
            self.session = self._open_session(db, user)
        logger.info("[AUTH] Identity created user_id=%s", self.session.user_id)
        self._emit(SIGNED_IN)
        return self.session

    def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        normalized = normalize_email(email)
        with self._session_factory() as db:
            user = db.scalar(select(AuthUser).where(AuthUser.email == normalized).limit(1))
            if user is None or not verify_password(password or "", user.password_hash):
                raise IdentityError("Invalid login credentials")
            self.session = self._open_session(db, user)
        self._emit(SIGNED_IN)
        return self.session

    def refresh_session(self) -> IdentitySession:
        """Issue a fresh token for the same provider session."""
        current = self.get_user()
        with self._session_factory() as db:
            auth_session = db.get(AuthSession, current.session_id)
            if auth_session is None:
                raise IdentityError("Session not found")
            auth_session.refreshed_at = datetime.now(timezone.utc)
            db.commit()
        self.session = current.model_copy(
            update={"access_token": issue_session_token(current.user_id, current.session_id)}
        )
        self._emit(TOKEN_REFRESHED)
        return self.session

    def sign_out(self) -> None:
        """Revoke the held session; signing out twice is a no-op."""
        if self.session is None:
            return
        with self._session_factory() as db:
            auth_session = db.get(AuthSession, self.session.session_id)
            if auth_session is not None and auth_session.revoked_at is None:
                auth_session.revoked_at = datetime.now(timezone.utc)
                db.commit()
        self.session = None
        self._emit(SIGNED_OUT)

    def _open_session(self, db: Session, user: AuthUser) -> IdentitySession:
        auth_session = AuthSession(user_id=user.id)
        db.add(auth_session)
        user.last_sign_in_at = datetime.now(timezone.utc)
        db.commit()
        return IdentitySession(
            access_token=issue_session_token(user.id, auth_session.id),
            user_id=user.id,
            email=user.email,
            session_id=auth_session.id,
        )

    @staticmethod
    def _verify(db: Session, access_token: str) -> IdentitySession:
        user_id, session_id = read_session_token(access_token)
        auth_session = db.get(AuthSession, session_id)
        if auth_session is None or auth_session.revoked_at is not None:
            raise IdentityError("Session has been signed out")
        if auth_session.user_id != user_id:
            raise IdentityError("Invalid access token")
        user = db.get(AuthUser, auth_session.user_id)
        if user is None:
            raise IdentityError("User not found")
        return IdentitySession(
            access_token=access_token,
            user_id=user.id,
            email=user.email,
            session_id=auth_session.id,
        )

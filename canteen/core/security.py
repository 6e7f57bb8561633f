"""Password hashing and signed access tokens for the identity provider."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from canteen.core.config import settings
from canteen.core.errors import IdentityError

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def issue_session_token(user_id: str, session_id: str) -> str:
    """Sign a token naming the identity (``sub``) and its provider session (``sid``)."""
    issued_at = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": user_id,
        "sid": session_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def read_session_token(token: str) -> tuple[str, str]:
    """Return ``(user_id, session_id)`` from a token signed by this provider.

    Raises:
        IdentityError: when the signature, expiry or claims are not valid.
    """
    try:
        claims: dict[str, Any] = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise IdentityError("Invalid or expired access token") from exc

    user_id = claims.get("sub")
    session_id = claims.get("sid")
    if not user_id or not session_id:
        raise IdentityError("Invalid access token")
    return str(user_id), str(session_id)

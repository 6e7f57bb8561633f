"""Shared FastAPI dependencies for the data API."""

from collections.abc import Generator

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from canteen.core.errors import MSG_NOT_CONFIGURED
from canteen.db import session as db_session
from canteen.schemas.auth import IdentitySession
from canteen.services.availability_service import AvailabilityService
from canteen.services.identity_provider import IdentityClient
from canteen.services.session_service import SessionAdapter
from canteen.state import MenuState

bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)


def require_configured(request: Request) -> None:
    if getattr(request.app.state, "config_error", None) is not None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=MSG_NOT_CONFIGURED)


def require_api_key(request: Request, apikey: str | None = Header(default=None)) -> None:
    """Every data API call must carry the anonymous access key."""
    require_configured(request)
    if not apikey or apikey != request.app.state.connection.anon_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def get_menu_state(request: Request) -> MenuState:
    return request.app.state.menu_state


def get_identity_client() -> IdentityClient:
    return IdentityClient(db_session.get_session_factory())


def get_session_adapter(
    identity: IdentityClient = Depends(get_identity_client),
) -> Generator[SessionAdapter, None, None]:
    adapter = SessionAdapter(identity, db_session.get_session_factory())
    try:
        yield adapter
    finally:
        adapter.close()


def get_signed_in_adapter(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    adapter: SessionAdapter = Depends(get_session_adapter),
) -> SessionAdapter:
    """Restore the bearer token into the adapter; 401 when it is missing or rejected."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    restored: IdentitySession | None = adapter.restore_session(credentials.credentials)
    if restored is None:
        detail = adapter.session_error or "Invalid authentication token"
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
    return adapter


def require_admin(adapter: SessionAdapter = Depends(get_signed_in_adapter)) -> SessionAdapter:
    """Signed-in identity that also resolves to an active admin row."""
    if adapter.lookup.error:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=adapter.lookup.error)
    if not adapter.is_authenticated:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not an active admin")
    return adapter


def get_availability_service(adapter: SessionAdapter = Depends(require_admin)) -> AvailabilityService:
    return AvailabilityService(db_session.get_session_factory(), adapter.identity)


def get_db() -> Generator[Session, None, None]:
    yield from db_session.get_db()

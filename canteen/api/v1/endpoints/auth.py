"""Authentication endpoints (API bearer tokens)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from canteen.api.deps import get_session_adapter, get_signed_in_adapter, require_admin
from canteen.schemas.auth import AdminRead, SignInRequest, SignUpRequest, TokenResponse
from canteen.schemas.results import WriteOutcome
from canteen.services.session_service import SessionAdapter

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


def _token_response(adapter: SessionAdapter) -> TokenResponse:
    session = adapter.session
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return TokenResponse(
        access_token=session.access_token,
        admin=adapter.admin,
        unprovisioned=adapter.lookup.unprovisioned,
    )


@router.post("/signin", response_model=TokenResponse)
def sign_in(payload: SignInRequest, adapter: SessionAdapter = Depends(get_session_adapter)) -> TokenResponse:
    result = adapter.sign_in(payload.email, payload.password)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.error)
    return _token_response(adapter)


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def sign_up(payload: SignUpRequest, adapter: SessionAdapter = Depends(get_session_adapter)) -> TokenResponse:
    result = adapter.sign_up(payload.email, payload.password, payload.name)
    if result.outcome is WriteOutcome.PARTIAL:
        logger.error("[AUTH] Sign-up left an identity without admin profile for email=%s", payload.email)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
    return _token_response(adapter)


@router.post("/refresh", response_model=TokenResponse)
def refresh(adapter: SessionAdapter = Depends(get_signed_in_adapter)) -> TokenResponse:
    """Swap a still-valid token for a fresh one; the admin row is re-resolved."""
    result = adapter.refresh_session()
    if not result.success:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.error)
    return _token_response(adapter)


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(adapter: SessionAdapter = Depends(get_signed_in_adapter)) -> Response:
    result = adapter.sign_out()
    if not result.success:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=AdminRead)
def me(adapter: SessionAdapter = Depends(require_admin)) -> AdminRead:
    return adapter.admin

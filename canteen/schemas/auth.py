"""Authentication-related request and response schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class SignInRequest(BaseModel):
    """Payload for admin sign-in."""

    email: str
    password: str


class SignUpRequest(BaseModel):
    """Payload for admin self-registration."""

    email: str
    password: str
    name: str


class AdminRead(BaseModel):
    """Admin directory row."""

    id: str
    email: str
    name: str
    role: Literal["admin", "super_admin"]
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    """Access token for API callers, plus the resolved admin when there is one."""

    access_token: str
    token_type: str = "bearer"
    admin: AdminRead | None = None
    unprovisioned: bool = False


class IdentitySession(BaseModel):
    """Signed-in identity as seen by the client holding the access token."""

    access_token: str
    user_id: str
    email: str
    session_id: str

"""Schema exports."""

from canteen.schemas.auth import AdminRead, IdentitySession, SignInRequest, SignUpRequest, TokenResponse
from canteen.schemas.menu import (
    AvailabilityRequest,
    BulkAvailabilityRequest,
    CatalogResponse,
    MenuItemRead,
    MenuUpdateRead,
    SelectionRequest,
)
from canteen.schemas.results import (
    AdminLookup,
    AvailabilityResult,
    BulkAvailabilityResult,
    OperationResult,
    WriteOutcome,
)

__all__ = [
    "AdminLookup",
    "AdminRead",
    "AvailabilityRequest",
    "AvailabilityResult",
    "BulkAvailabilityRequest",
    "BulkAvailabilityResult",
    "CatalogResponse",
    "IdentitySession",
    "MenuItemRead",
    "MenuUpdateRead",
    "OperationResult",
    "SelectionRequest",
    "SignInRequest",
    "SignUpRequest",
    "TokenResponse",
    "WriteOutcome",
]

"""Menu catalog and availability endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.api.deps import get_availability_service, get_db, get_menu_state, require_admin
from canteen.core.errors import MSG_ITEM_NOT_FOUND
from canteen.schemas.menu import (
    AvailabilityRequest,
    BulkAvailabilityRequest,
    CatalogResponse,
    MenuItemRead,
    SelectionRequest,
)
from canteen.schemas.results import AvailabilityResult, BulkAvailabilityResult
from canteen.services.availability_service import AvailabilityService
from canteen.services.catalog_service import list_menu_items
from canteen.services.session_service import SessionAdapter
from canteen.state import MenuState

router: APIRouter = APIRouter()


def _acting_name(adapter: SessionAdapter) -> str:
    return adapter.admin.name


@router.get("", response_model=CatalogResponse)
def get_menu(db: Session = Depends(get_db), menu_state: MenuState = Depends(get_menu_state)) -> CatalogResponse:
    """Return every menu item ordered by category, then name."""
    try:
        rows = list_menu_items(db)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to fetch menu items") from exc
    return CatalogResponse(
        items=[MenuItemRead.model_validate(row) for row in rows],
        last_updated=menu_state.last_updated,
    )


@router.put("/{item_id}/availability", response_model=AvailabilityResult)
def set_item_availability(
    item_id: int,
    payload: AvailabilityRequest,
    adapter: SessionAdapter = Depends(require_admin),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResult:
    result = service.set_availability(item_id, payload.is_available, _acting_name(adapter))
    if result.error == MSG_ITEM_NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.error)
    return result


@router.post("/availability/bulk", response_model=BulkAvailabilityResult)
def set_bulk_availability(
    payload: BulkAvailabilityRequest,
    adapter: SessionAdapter = Depends(require_admin),
    service: AvailabilityService = Depends(get_availability_service),
) -> BulkAvailabilityResult:
    """Apply one write per item; per-item outcomes are reported, nothing is rolled back."""
    return service.set_availability_bulk(payload.item_ids, payload.is_available, _acting_name(adapter))


@router.put("/selection", response_model=BulkAvailabilityResult)
def save_selection(
    payload: SelectionRequest,
    adapter: SessionAdapter = Depends(require_admin),
    service: AvailabilityService = Depends(get_availability_service),
) -> BulkAvailabilityResult:
    result = service.apply_selection(payload.selected_ids, _acting_name(adapter))
    if result.error:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error)
    return result

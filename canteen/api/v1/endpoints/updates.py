"""Recent activity feed endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.api.deps import get_db, require_admin
from canteen.schemas.menu import MenuUpdateRead
from canteen.services.audit_service import list_recent_updates

router: APIRouter = APIRouter()


@router.get("", response_model=list[MenuUpdateRead], dependencies=[Depends(require_admin)])
def get_recent_updates(
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[MenuUpdateRead]:
    """Return the newest audit rows first."""
    try:
        rows = list_recent_updates(db, limit)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to fetch recent updates") from exc
    return [MenuUpdateRead.model_validate(row) for row in rows]

"""API v1 router composition."""

from fastapi import APIRouter, Depends

from canteen.api.deps import require_api_key
from canteen.api.v1.endpoints import auth, menu, realtime, updates

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"], dependencies=[Depends(require_api_key)])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"], dependencies=[Depends(require_api_key)])
api_router.include_router(updates.router, prefix="/updates", tags=["updates"], dependencies=[Depends(require_api_key)])
api_router.include_router(realtime.router, tags=["realtime"])

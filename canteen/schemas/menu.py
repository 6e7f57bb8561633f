"""Menu catalog and audit API schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class MenuItemRead(BaseModel):
    """Serialized menu item; public and admin readers share this projection."""

    id: int
    name: str
    category: str
    image: str
    is_available: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MenuUpdateRead(BaseModel):
    """Serialized audit row."""

    id: int
    admin_id: str
    admin_name: str
    item_id: int
    item_name: str
    action: Literal["added", "removed"]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityRequest(BaseModel):
    """Payload to set one item's availability."""

    is_available: bool


class BulkAvailabilityRequest(BaseModel):
    """Payload to set availability for several items, one write per item."""

    item_ids: list[int] = Field(min_length=1)
    is_available: bool


class SelectionRequest(BaseModel):
    """Payload describing the full set of items that should be available."""

    selected_ids: list[int]


class CatalogResponse(BaseModel):
    """Menu listing with the time the server last refreshed it."""

    items: list[MenuItemRead]
    last_updated: datetime

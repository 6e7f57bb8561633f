"""Availability writes: the only path that changes ``MenuItem.is_available``."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.core.errors import MSG_ITEM_NOT_FOUND, IdentityError
from canteen.schemas.results import AvailabilityResult, BulkAvailabilityResult, WriteOutcome
from canteen.services.audit_service import record_menu_update
from canteen.services.catalog_service import get_menu_item, list_menu_items
from canteen.services.identity_provider import IdentityClient

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Sets item availability and records who did it.

    Callers are trusted to have checked that ``acting_admin_name`` belongs to an
    authenticated, active admin. The identity client is still asked for the
    acting user id, which is copied into the audit row.
    """

    def __init__(self, session_factory: Callable[[], Session], identity: IdentityClient) -> None:
        self._session_factory = session_factory
        self.identity = identity

    def set_availability(self, item_id: int, is_available: bool, acting_admin_name: str) -> AvailabilityResult:
        """Update the item and append its audit row in a single transaction."""
        try:
            acting = self.identity.get_user()
        except IdentityError as exc:
            return self._failed(item_id, is_available, f"Not authenticated: {exc}")
        except SQLAlchemyError:
            logger.exception("[MENU] Identity lookup failed before updating item_id=%s", item_id)
            return self._failed(item_id, is_available, "Failed to update item")

        try:
            with self._session_factory() as db:
                item = get_menu_item(db, item_id)
                if item is None:
                    return self._failed(item_id, is_available, MSG_ITEM_NOT_FOUND)
                item.is_available = is_available
                update = record_menu_update(
                    db,
                    admin_id=acting.user_id,
                    admin_name=acting_admin_name,
                    item_id=item.id,
                    item_name=item.name,
                    is_available=is_available,
                )
                db.commit()
                update_id = update.id
        except SQLAlchemyError:
            logger.exception("[MENU] Availability write failed for item_id=%s", item_id)
            return self._failed(item_id, is_available, "Failed to update item")

        logger.info(
            "[MENU] item_id=%s is_available=%s by admin_id=%s (%s)",
            item_id,
            is_available,
            acting.user_id,
            acting_admin_name,
        )
        return AvailabilityResult(
            success=True,
            outcome=WriteOutcome.APPLIED,
            item_id=item_id,
            is_available=is_available,
            update_id=update_id,
        )

    def set_availability_bulk(
        self,
        item_ids: Iterable[int],
        is_available: bool,
        acting_admin_name: str,
    ) -> BulkAvailabilityResult:
        """One independent write per item, in order; a failure never stops the rest."""
        bulk = BulkAvailabilityResult()
        for item_id in item_ids:
            bulk.results.append(self.set_availability(item_id, is_available, acting_admin_name))
        if bulk.failed_ids:
            logger.warning("[MENU] Bulk availability finished with failures for item_ids=%s", bulk.failed_ids)
        return bulk

    def apply_selection(self, selected_ids: Iterable[int], acting_admin_name: str) -> BulkAvailabilityResult:
        """Make exactly ``selected_ids`` available, writing only items whose state differs."""
        selected = set(selected_ids)
        try:
            with self._session_factory() as db:
                current = {item.id: item.is_available for item in list_menu_items(db)}
        except SQLAlchemyError:
            logger.exception("[MENU] Could not read catalog before applying selection")
            return BulkAvailabilityResult(error="Failed to fetch menu items")

        bulk = BulkAvailabilityResult()
        for item_id, available in current.items():
            wanted = item_id in selected
            if wanted != available:
                bulk.results.append(self.set_availability(item_id, wanted, acting_admin_name))
        if bulk.failed_ids:
            logger.warning("[MENU] Selection save finished with failures for item_ids=%s", bulk.failed_ids)
        return bulk

    @staticmethod
    def _failed(item_id: int, is_available: bool, error: str) -> AvailabilityResult:
        return AvailabilityResult(
            success=False,
            outcome=WriteOutcome.NOT_APPLIED,
            error=error,
            item_id=item_id,
            is_available=is_available,
        )

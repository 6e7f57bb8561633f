"""Process-wide menu state kept fresh by realtime notifications."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.schemas.menu import MenuItemRead, MenuUpdateRead
from canteen.services.audit_service import list_recent_updates
from canteen.services.catalog_service import group_by_category, list_menu_items
from canteen.services.realtime import ChangeEvent, Channel, RealtimeHub

logger = logging.getLogger(__name__)

StateListener = Callable[["MenuState"], None]


class MenuState:
    """Catalog and recent activity snapshot shared by every view.

    Lifecycle: ``start`` loads both lists and subscribes to changes on
    ``menu_items`` (any event) and ``menu_updates`` (inserts); ``stop``
    unsubscribes. Every notification triggers a full re-fetch, never a patch.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        hub: RealtimeHub,
        *,
        updates_limit: int = 10,
    ) -> None:
        self._session_factory = session_factory
        self._hub = hub
        self.updates_limit = updates_limit
        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []
        self._channels: list[Channel] = []
        self.items: list[MenuItemRead] = []
        self.items_error: str | None = None
        self.last_updated: datetime = datetime.now(timezone.utc)
        self.recent_updates: list[MenuUpdateRead] = []
        self.updates_error: str | None = None

    @property
    def started(self) -> bool:
        return any(channel.subscribed for channel in self._channels)

    def start(self) -> None:
        if self.started:
            return
        self.refresh_items()
        self.refresh_updates()
        self._channels = [
            self._hub.channel("menu_items_changes").on("menu_items", "*", self._on_items_changed).subscribe(),
            self._hub.channel("menu_updates_changes").on("menu_updates", "insert", self._on_update_inserted).subscribe(),
        ]
        logger.info("[MENU] Menu state started with %d item(s)", len(self.items))

    def stop(self) -> None:
        for channel in self._channels:
            channel.unsubscribe()
        self._channels = []
        with self._lock:
            self._listeners.clear()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for refresh notifications; returns the unsubscribe call."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def refresh_items(self, *, touch: bool = False) -> bool:
        """Re-read the catalog; ``touch`` also moves ``last_updated`` to now."""
        try:
            with self._session_factory() as db:
                items = [MenuItemRead.model_validate(row) for row in list_menu_items(db)]
        except SQLAlchemyError:
            logger.exception("[MENU] Error fetching menu items")
            with self._lock:
                self.items_error = "Failed to fetch menu items"
            self._notify()
            return False
        with self._lock:
            self.items = items
            self.items_error = None
            if touch:
                self.last_updated = datetime.now(timezone.utc)
        self._notify()
        return True

    def refresh_updates(self) -> bool:
        try:
            with self._session_factory() as db:
                updates = [MenuUpdateRead.model_validate(row) for row in list_recent_updates(db, self.updates_limit)]
        except SQLAlchemyError:
            logger.exception("[MENU] Error fetching recent updates")
            with self._lock:
                self.updates_error = "Failed to fetch recent updates"
            self._notify()
            return False
        with self._lock:
            self.recent_updates = updates
            self.updates_error = None
        self._notify()
        return True

    def available_items(self) -> list[MenuItemRead]:
        with self._lock:
            return [item for item in self.items if item.is_available]

    def grouped_items(self, *, available_only: bool = False) -> dict[str, list[MenuItemRead]]:
        with self._lock:
            items = list(self.items)
        return group_by_category(items, available_only=available_only)

    def _on_items_changed(self, change: ChangeEvent) -> None:
        logger.debug("[MENU] Realtime %s on %s", change.event, change.table)
        self.refresh_items(touch=True)

    def _on_update_inserted(self, change: ChangeEvent) -> None:
        self.refresh_updates()

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception:
                logger.exception("[MENU] State listener failed")

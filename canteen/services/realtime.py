"""In-process realtime notifier for committed table changes.

Writes are captured from SQLAlchemy session events: ``after_flush`` records which
tables saw inserts, updates or deletes, ``after_commit`` publishes them and the
end of the outer transaction drops anything left over. A rolled-back savepoint
rewinds the list to where it began, so subscribers only hear about data that
reached storage. Subscribers get no row payload, only
"table X changed".
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.orm import Session, SessionTransaction

logger = logging.getLogger(__name__)

CHANGE_EVENTS: tuple[str, ...] = ("insert", "update", "delete")
ALL_EVENTS = "*"
_PENDING_KEY = "canteen_realtime_pending"
_MARKS_KEY = "canteen_realtime_savepoints"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    committed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict[str, str]:
        return {"table": self.table, "event": self.event, "committed_at": self.committed_at.isoformat()}


ChangeCallback = Callable[[ChangeEvent], None]


class Channel:
    """Named group of (table, event, callback) bindings subscribed as one unit."""

    def __init__(self, hub: "RealtimeHub", name: str) -> None:
        self.hub = hub
        self.name = name
        self._bindings: list[tuple[str, str, ChangeCallback]] = []
        self.subscribed = False

    def on(self, table: str, event_name: str, callback: ChangeCallback) -> "Channel":
        normalized = event_name.lower()
        if normalized != ALL_EVENTS and normalized not in CHANGE_EVENTS:
            raise ValueError(f"Unknown change event: {event_name}")
        self._bindings.append((table, normalized, callback))
        return self

    def subscribe(self) -> "Channel":
        self.hub._attach(self)
        self.subscribed = True
        return self

    def unsubscribe(self) -> None:
        self.hub._detach(self)
        self.subscribed = False

    def dispatch(self, change: ChangeEvent) -> None:
        for table, event_name, callback in list(self._bindings):
            if table != change.table:
                continue
            if event_name not in (ALL_EVENTS, change.event):
                continue
            try:
                callback(change)
            except Exception:
                logger.exception(
                    "[REALTIME] Subscriber on channel=%s failed for %s/%s",
                    self.name,
                    change.table,
                    change.event,
                )


class RealtimeHub:
    """Fan-out of committed change events to subscribed channels."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: list[Channel] = []
        self._installed = False

    def channel(self, name: str) -> Channel:
        return Channel(self, name)

    def _attach(self, channel: Channel) -> None:
        with self._lock:
            if channel not in self._channels:
                self._channels.append(channel)

    def _detach(self, channel: Channel) -> None:
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def publish(self, changes: Iterable[tuple[str, str]]) -> None:
        """Deliver each distinct (table, event) pair to every subscribed channel."""
        with self._lock:
            channels = list(self._channels)
        seen: set[tuple[str, str]] = set()
        for table, event_name in changes:
            if (table, event_name) in seen:
                continue
            seen.add((table, event_name))
            change = ChangeEvent(table=table, event=event_name)
            logger.debug("[REALTIME] %s/%s -> %d channel(s)", table, event_name, len(channels))
            for channel in channels:
                channel.dispatch(change)

    def install(self) -> None:
        """Attach change capture to every SQLAlchemy ``Session``."""
        if self._installed:
            return
        event.listen(Session, "after_flush", _collect_changes)
        event.listen(Session, "after_commit", self._publish_pending)
        event.listen(Session, "after_transaction_create", _mark_savepoint)
        event.listen(Session, "after_soft_rollback", _rewind_savepoint)
        event.listen(Session, "after_transaction_end", _discard_pending)
        self._installed = True

    def _publish_pending(self, session: Session) -> None:
        pending: list[tuple[str, str]] = session.info.pop(_PENDING_KEY, [])
        if pending:
            self.publish(pending)


def _table_name(obj: object) -> str:
    return type(obj).__tablename__


def _collect_changes(session: Session, flush_context: object) -> None:
    pending: list[tuple[str, str]] = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        pending.append((_table_name(obj), "insert"))
    for obj in session.dirty:
        if session.is_modified(obj, include_collections=False):
            pending.append((_table_name(obj), "update"))
    for obj in session.deleted:
        pending.append((_table_name(obj), "delete"))


def _discard_pending(session: Session, transaction: SessionTransaction) -> None:
    if transaction.parent is None:
        session.info.pop(_PENDING_KEY, None)
        session.info.pop(_MARKS_KEY, None)


def _mark_savepoint(session: Session, transaction: SessionTransaction) -> None:
    if transaction.nested:
        marks = session.info.setdefault(_MARKS_KEY, {})
        marks[transaction] = len(session.info.get(_PENDING_KEY, []))


def _rewind_savepoint(session: Session, previous_transaction: SessionTransaction) -> None:
    if not previous_transaction.nested:
        return
    mark = session.info.get(_MARKS_KEY, {}).pop(previous_transaction, None)
    pending = session.info.get(_PENDING_KEY)
    if mark is not None and pending is not None:
        del pending[mark:]


realtime_hub: RealtimeHub = RealtimeHub()
realtime_hub.install()

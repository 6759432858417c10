import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from opsdesk.core.db import utcnow

logger = logging.getLogger(__name__)

EventType = Literal["INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: EventType
    record_id: Any
    record: dict[str, Any]  # row after the change; the removed row for DELETE
    committed_at: datetime = field(default_factory=utcnow)

    def matches(self, filters: dict[str, Any] | None) -> bool:
        if not filters:
            return True
        return all(str(self.record.get(k)) == str(v) for k, v in filters.items())

    def as_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "type": self.type,
            "record_id": self.record_id,
            "record": self.record,
            "committed_at": self.committed_at.isoformat(),
        }


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, callback: Callable[[ChangeEvent], None],
                 filters: dict[str, Any] | None):
        self.feed = feed
        self.table = table
        self.callback = callback
        self.filters = dict(filters or {})
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed._remove(self)


class ChangeFeed:
    """Row-level change notifications, per table, inside one process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subs: dict[str, list[Subscription]] = {}

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], None],
                  filters: dict[str, Any] | None = None) -> Subscription:
        sub = Subscription(self, table, callback, filters)
        with self._lock:
            self._subs.setdefault(table, []).append(sub)
        logger.debug("subscribed to %s filters=%s", table, sub.filters)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.table, [])
            if sub in subs:
                subs.remove(sub)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subs.get(table, []))

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [s for s in self._subs.get(event.table, []) if event.matches(s.filters)]
        for sub in targets:
            if sub.closed:
                continue
            try:
                sub.callback(event)
            except Exception:
                # one bad listener must not starve the rest
                logger.exception("change listener failed for %s #%s", event.table, event.record_id)

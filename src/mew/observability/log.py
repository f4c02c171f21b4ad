"""Event log — bounded, thread-safe history of site events.

Keeps the most recent events in a ring buffer so the stats endpoint and
tests can inspect what the reload loop has been doing.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  Events are appended
    from the watcher thread, the build worker thread, and the event loop.

"""

import threading
from collections import deque
from collections.abc import Iterable
from typing import Any

from mew.observability.events import SiteEvent


class EventLog:
    """Bounded event store with query support.

    When the buffer is full the oldest events are discarded.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[SiteEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: SiteEvent) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)

    def extend(self, events: Iterable[SiteEvent]) -> None:
        """Record several events at once."""
        with self._lock:
            self._events.extend(events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[SiteEvent]:
        """Query events, most recent first.

        Args:
            event_type: Only return events of this type.
            since_ns: Only return events at or after this timestamp.
            path: Substring that the event's ``path`` must contain.
            limit: Maximum number of events to return.

        """
        with self._lock:
            snapshot = list(self._events)

        results: list[SiteEvent] = []
        for event in reversed(snapshot):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and getattr(event, "timestamp_ns", 0) < since_ns:
                continue
            if path is not None and path not in (getattr(event, "path", None) or ""):
                continue
            results.append(event)
        return results

    def latest(self, event_type: type) -> SiteEvent | None:
        """The most recent event of ``event_type``, if any."""
        found = self.query(event_type=event_type, limit=1)
        return found[0] if found else None

    def recent(self, n: int = 20) -> list[SiteEvent]:
        """Return the N most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Clear all events and return the count that was cleared."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Summary counts by event type."""
        with self._lock:
            events = list(self._events)

        by_type: dict[str, int] = {}
        for event in events:
            name = type(event).__name__
            by_type[name] = by_type.get(name, 0) + 1

        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": by_type,
        }

"""Site collector — records index build and reload events.

Also satisfies Pounce's ``LifecycleCollector`` protocol (a single
``record(event)`` method), so request lifecycle events land in the same
EventLog as the reload history.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mew.observability.events import (
    BuildWarning,
    ChangeDetected,
    IndexBuilt,
    IndexSwapped,
    ReloadFailed,
    now_ns,
)
from mew.observability.log import EventLog

if TYPE_CHECKING:
    from mew.content.index import ContentIndex


class SiteCollector:
    """Event collector for the content index and its reload loop.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Pounce LifecycleCollector protocol -----

    def record(self, event: Any) -> None:
        """Record a Pounce lifecycle event as-is."""
        self._log.append(event)

    # ----- Watcher -----

    def record_change(self, path: str, category: str) -> None:
        """Record a change notification from the watcher."""
        self._log.append(ChangeDetected(path=path, category=category, timestamp_ns=now_ns()))

    # ----- Builds -----

    def record_build(self, index: ContentIndex, *, duration_ms: float = 0.0) -> None:
        """Record a finished build and each of its warnings."""
        stamp = now_ns()
        events: list[Any] = [
            BuildWarning(message=warning, timestamp_ns=stamp) for warning in index.warnings
        ]
        events.append(
            IndexBuilt(
                generation=index.generation,
                pages=len(index.pages),
                posts=len(index.posts),
                tags=len(index.tags),
                redirects=len(index.redirects),
                warnings=len(index.warnings),
                duration_ms=duration_ms,
                timestamp_ns=stamp,
            )
        )
        self._log.extend(events)

    # ----- Reloads -----

    def record_swap(self, old_generation: int, new_generation: int, *, trigger_count: int = 0) -> None:
        """Record that a new snapshot went live."""
        self._log.append(
            IndexSwapped(
                old_generation=old_generation,
                new_generation=new_generation,
                trigger_count=trigger_count,
                timestamp_ns=now_ns(),
            )
        )

    def record_failure(self, exc: BaseException) -> None:
        """Record a failed rebuild."""
        self._log.append(
            ReloadFailed(
                error_type=type(exc).__name__,
                message=str(exc),
                timestamp_ns=now_ns(),
            )
        )

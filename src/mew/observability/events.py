"""Event model for site observability.

Defines event types for the index build and reload cycle.  Pounce lifecycle
events (connections, requests) are recorded alongside them unchanged.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Watcher events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChangeDetected:
    """A watched build input changed on disk.

    Attributes:
        path: Absolute path of the changed file.
        category: Which build input it belongs to.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    category: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Build events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IndexBuilt:
    """A content index build completed.

    Attributes:
        generation: Build number stamped on the new snapshot.
        pages: Number of pages.
        posts: Number of posts.
        tags: Number of distinct tags.
        redirects: Number of alternate URLs.
        warnings: Number of build warnings.
        duration_ms: Build time in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    generation: int
    pages: int
    posts: int
    tags: int
    redirects: int
    warnings: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class BuildWarning:
    """A non-fatal problem noticed while building.

    Attributes:
        message: Human-readable description.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Reload events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IndexSwapped:
    """The live snapshot was replaced.

    Attributes:
        old_generation: Generation that stopped being served.
        new_generation: Generation now being served.
        trigger_count: Change notifications coalesced into this reload.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    old_generation: int
    new_generation: int
    trigger_count: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReloadFailed:
    """A background rebuild failed; the previous snapshot stays live.

    Attributes:
        error_type: Exception class name.
        message: Exception message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    error_type: str
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type SiteEvent = (
    ChangeDetected
    | IndexBuilt
    | BuildWarning
    | IndexSwapped
    | ReloadFailed
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()

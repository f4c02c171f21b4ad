"""Site observability — what the index and its reload loop have been doing.

Records:
- **Watcher**: which build inputs changed
- **Builds**: index size, build time, warnings
- **Reloads**: snapshot swaps and failed rebuilds
- **Pounce**: connection lifecycle events, when the collector is passed to
  the server as its lifecycle collector

Quick Start:
    >>> from mew.observability import EventLog, SiteCollector
    >>> collector = SiteCollector(EventLog())
    >>> collector.record_change("/site/posts/hello.md", "posts")
    >>> collector.log.stats()["by_type"]
    {'ChangeDetected': 1}

"""

from mew.observability.collector import SiteCollector
from mew.observability.events import (
    BuildWarning,
    ChangeDetected,
    IndexBuilt,
    IndexSwapped,
    ReloadFailed,
    SiteEvent,
    now_ns,
)
from mew.observability.log import EventLog

__all__ = [
    "BuildWarning",
    "ChangeDetected",
    "EventLog",
    "IndexBuilt",
    "IndexSwapped",
    "ReloadFailed",
    "SiteCollector",
    "SiteEvent",
    "now_ns",
]

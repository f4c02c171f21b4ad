"""File watcher — feeds the reload coordinator with change notifications.

Watches the inputs of an index build:

- ``server.yml`` / ``pages.yml`` / ``posts.yml`` -> "config"
- the pages directory -> "pages"
- the posts directory -> "posts"
- the templates directory -> "templates"

The static directory is never watched; static files are served straight from
disk and never feed the index.
"""

from __future__ import annotations

import asyncio
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change

from mew._errors import WatchError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from mew._types import ChangeCategory
    from mew.config import ServerConfig


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.
        category: Which build input the file belongs to.

    """

    path: Path
    kind: Literal["created", "modified", "deleted"]
    category: ChangeCategory


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, Literal["created", "modified", "deleted"]] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def _is_within(path: Path, directory: Path) -> bool:
    return path == directory or path.is_relative_to(directory)


def categorize_change(path: Path, config: ServerConfig) -> ChangeCategory | None:
    """Determine which build input a changed path belongs to.

    Returns None for anything the index does not depend on, including
    everything under the static directory.

    """
    if not _is_within(path, config.root):
        return None
    if _is_within(path, config.static_dir):
        return None
    if path in config.config_files:
        return "config"
    if _is_within(path, config.templates_dir):
        return "templates"
    if _is_within(path, config.pages_dir):
        return "pages"
    if _is_within(path, config.posts_dir):
        return "posts"
    return None


class ContentWatcher:
    """Watches build inputs and bridges changes onto an asyncio queue.

    watchfiles runs in a daemon thread over the site root with a filter that
    keeps only categorized paths.  Watching the root rather than each file
    keeps editors that save by rename-and-replace from dropping the watch.
    Events cross into the event loop with ``call_soon_threadsafe``.

    """

    def __init__(self, config: ServerConfig) -> None:
        self._config = config
        self._queue: asyncio.Queue[ChangeEvent | BaseException] = asyncio.Queue()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._error: BaseException | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start watching in a background thread.

        Must be called from the event loop that consumes ``changes()``,
        unless that loop is passed explicitly.

        """
        if self.is_running:
            return

        self._loop = loop or asyncio.get_running_loop()
        self._stop_event.clear()
        self._error = None
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="mew-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    async def changes(self) -> AsyncIterator[ChangeEvent]:
        """Async iterator that yields ChangeEvent objects as they occur.

        Ends once the watcher is stopped and the queue is drained.

        Raises:
            WatchError: If the watcher thread died; no further changes
                would ever arrive.

        """
        while self.is_running or not self._queue.empty():
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except TimeoutError:
                if not self.is_running:
                    break
                continue
            if isinstance(event, BaseException):
                raise WatchError(event) from event
            yield event
        if self._error is not None:
            raise WatchError(self._error) from self._error

    def _accepts(self, change: Change, path: str) -> bool:
        return categorize_change(Path(path), self._config) is not None

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and push events to the loop."""
        from watchfiles import watch

        try:
            for raw_changes in watch(
                self._config.root,
                watch_filter=self._accepts,
                stop_event=self._stop_event,
                debounce=300,
                step=100,
            ):
                self.dispatch(raw_changes)
        except Exception as exc:
            print(f"  File watcher stopped: {type(exc).__name__}: {exc}", file=sys.stderr)
            self._error = exc
            loop = self._loop
            if loop is not None and not loop.is_closed():
                loop.call_soon_threadsafe(self._queue.put_nowait, exc)

    def dispatch(self, raw_changes: Iterable[tuple[Change, str]]) -> int:
        """Convert raw watchfiles changes and hand them to the event loop.

        Returns the number of events forwarded.

        """
        loop = self._loop
        if loop is None or loop.is_closed():
            return 0

        forwarded = 0
        for change_type, path_str in raw_changes:
            path = Path(path_str)
            category = categorize_change(path, self._config)
            if category is None:
                continue
            kind = _CHANGE_KIND_MAP.get(change_type, "modified")
            event = ChangeEvent(path=path, kind=kind, category=category)
            loop.call_soon_threadsafe(self._queue.put_nowait, event)
            forwarded += 1
        return forwarded

"""Reload coordinator — turns bursts of file changes into single rebuilds.

The coordinator is a small state machine driven by one asyncio queue:

    idle          waiting for the first change notification
    accumulating  re-arming a debounce timer on every further notification
    rebuilding    the timer expired; the index is rebuilt and swapped in

Notifications arriving while a rebuild runs stay in the queue.  When the
rebuild finishes the loop goes straight back to accumulating, so a burst
during a rebuild costs one more rebuild, not one per event.  Rebuilds never
overlap because the loop awaits each one before reading the queue again.

The coordinator never looks at what changed.  Every rebuild reloads the
records, templates and sources from scratch.
"""

from __future__ import annotations

import asyncio
import sys
import time
from typing import TYPE_CHECKING

from mew._errors import LockError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from mew._types import ReloadState
    from mew.content.container import IndexContainer
    from mew.content.index import ContentIndex
    from mew.content.watcher import ChangeEvent
    from mew.observability.collector import SiteCollector

# Quiet period after the last change before a rebuild starts (seconds).
DEFAULT_DEBOUNCE = 1.0


class ReloadCoordinator:
    """Debounces change notifications and rebuild-and-swaps the index.

    Args:
        container: Holder of the live snapshot.
        rebuild: Builds a complete index for the given generation number.
            Runs on a worker thread; raising leaves the old snapshot live.
        debounce: Seconds of quiet required before a rebuild.
        collector: Optional event collector for reload history.

    """

    def __init__(
        self,
        container: IndexContainer,
        rebuild: Callable[[int], ContentIndex],
        *,
        debounce: float = DEFAULT_DEBOUNCE,
        collector: SiteCollector | None = None,
    ) -> None:
        self._container = container
        self._rebuild = rebuild
        self._debounce = debounce
        self._collector = collector
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self._state: ReloadState = "idle"
        self._task: asyncio.Task[None] | None = None
        self._rebuild_count = 0
        self._failure_count = 0

    @property
    def state(self) -> ReloadState:
        """Current state of the reload state machine."""
        return self._state

    @property
    def rebuild_count(self) -> int:
        """Number of rebuilds that were swapped in."""
        return self._rebuild_count

    @property
    def failure_count(self) -> int:
        """Number of rebuilds that failed."""
        return self._failure_count

    @property
    def pending(self) -> int:
        """Notifications queued but not yet consumed."""
        return self._queue.qsize()

    def notify(self, event: ChangeEvent | None = None) -> None:
        """Signal that something changed.  Must be called on the loop thread."""
        self._queue.put_nowait(event)

    # ----- Lifecycle -----

    def start(self, changes: AsyncIterator[ChangeEvent] | None = None) -> asyncio.Task[None]:
        """Run the coordinator as a background task on the current loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(changes), name="mew-reloader")
        return self._task

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish.

        A pending debounce timer or an unfinished build is abandoned without
        swapping.

        """
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run(self, changes: AsyncIterator[ChangeEvent] | None = None) -> None:
        """Coordinator loop.  Runs until cancelled.

        Args:
            changes: Optional async stream of change events to consume.
                Without one, events arrive through ``notify()``.  A stream
                that ends leaves ``notify()`` working; a stream that raises
                ends the coordinator with that error.

        Raises:
            LockError: The container lock failed; nothing can be served safely.

        """
        if changes is None:
            try:
                await self._cycles()
            finally:
                self._state = "idle"
            return

        pump = asyncio.create_task(self._pump(changes), name="mew-reloader-pump")
        cycles = asyncio.create_task(self._cycles(), name="mew-reloader-cycles")
        try:
            done, _ = await asyncio.wait({pump, cycles}, return_when=asyncio.FIRST_COMPLETED)
            if cycles in done:
                cycles.result()
            exc = pump.exception()
            if exc is not None:
                print(f"  Change stream failed, no further reloads: {exc}", file=sys.stderr)
                if self._collector is not None:
                    self._collector.record_failure(exc)
                raise exc
            await cycles
        finally:
            pump.cancel()
            cycles.cancel()
            await asyncio.gather(pump, cycles, return_exceptions=True)
            self._state = "idle"

    # ----- Internals -----

    async def _pump(self, changes: AsyncIterator[ChangeEvent]) -> None:
        async for event in changes:
            if self._collector is not None:
                self._collector.record_change(str(event.path), event.category)
            self.notify(event)

    async def _cycles(self) -> None:
        while True:
            await self._cycle()

    async def _cycle(self) -> None:
        """One idle -> accumulating -> rebuilding pass."""
        self._state = "idle"
        await self._queue.get()
        triggers = 1

        self._state = "accumulating"
        while True:
            try:
                await asyncio.wait_for(self._queue.get(), timeout=self._debounce)
            except TimeoutError:
                break
            triggers += 1

        self._state = "rebuilding"
        await self._rebuild_and_swap(triggers)

    async def _rebuild_and_swap(self, triggers: int) -> bool:
        """Build off the loop, then swap synchronously.

        Returns True when a new snapshot went live.

        """
        generation = self._container.generation + 1
        t0 = time.perf_counter()
        try:
            new_index = await asyncio.to_thread(self._rebuild, generation)
        except LockError:
            raise
        except Exception as exc:
            self._failure_count += 1
            print(f"  Reload failed, still serving the previous build: {exc}", file=sys.stderr)
            if self._collector is not None:
                self._collector.record_failure(exc)
            return False
        duration_ms = (time.perf_counter() - t0) * 1000

        # No await between here and the swap: once built, it always lands.
        old = self._container.replace(new_index)
        self._rebuild_count += 1

        for warning in new_index.warnings:
            print(f"  Warning: {warning}", file=sys.stderr)
        print(
            f"  Reloaded: {len(new_index.pages)} pages, {len(new_index.posts)} posts "
            f"(generation {new_index.generation}, {duration_ms:.0f}ms)",
            file=sys.stderr,
        )
        if self._collector is not None:
            self._collector.record_build(new_index, duration_ms=duration_ms)
            self._collector.record_swap(
                old.generation, new_index.generation, trigger_count=triggers
            )
        return True

"""Tests for mew.reactive.reloader — debounced rebuild-and-swap."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest

from mew._errors import ConfigError, LockError, WatchError
from mew.content.container import IndexContainer
from mew.content.index import ContentIndex, build_index, latest_post
from mew.content.watcher import ChangeEvent
from mew.observability import ChangeDetected, IndexBuilt, IndexSwapped, ReloadFailed, SiteCollector
from mew.reactive.reloader import DEFAULT_DEBOUNCE, ReloadCoordinator
from tests.conftest import pages_config, post_record, posts_config, stem_renderer

DEBOUNCE = 0.1


def _index(generation: int = 0) -> ContentIndex:
    return build_index(
        pages_config(),
        posts_config(post_record("hello", "2023-05-01")),
        stem_renderer,
        generation=generation,
    )


class FakeRebuild:
    """Counts calls; optionally blocks or fails."""

    def __init__(self) -> None:
        self.calls: list[int] = []
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self.error: Exception | None = None

    def __call__(self, generation: int) -> ContentIndex:
        self.calls.append(generation)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if self.error is not None:
            raise self.error
        return _index(generation)


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.fixture
def container() -> IndexContainer:
    return IndexContainer(_index(1))


@pytest.fixture
def rebuild() -> FakeRebuild:
    return FakeRebuild()


@pytest.fixture
def collector() -> SiteCollector:
    return SiteCollector()


@pytest.fixture
def coordinator(
    container: IndexContainer, rebuild: FakeRebuild, collector: SiteCollector
) -> ReloadCoordinator:
    return ReloadCoordinator(container, rebuild, debounce=DEBOUNCE, collector=collector)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TestStates:
    def test_default_debounce(self, container: IndexContainer) -> None:
        assert DEFAULT_DEBOUNCE == 1.0
        assert ReloadCoordinator(container, FakeRebuild())._debounce == 1.0

    @pytest.mark.asyncio
    async def test_idle_accumulating_rebuilding_idle(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild
    ) -> None:
        rebuild.gate = threading.Event()
        coordinator.start()
        await asyncio.sleep(0)
        assert coordinator.state == "idle"

        coordinator.notify()
        await wait_until(lambda: coordinator.state == "accumulating")
        await wait_until(lambda: coordinator.state == "rebuilding")
        rebuild.gate.set()
        await wait_until(lambda: coordinator.rebuild_count == 1)
        await wait_until(lambda: coordinator.state == "idle")
        await coordinator.stop()


# ---------------------------------------------------------------------------
# Debounce
# ---------------------------------------------------------------------------


class TestDebounce:
    @pytest.mark.asyncio
    async def test_burst_coalesces_to_one_rebuild(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild, container: IndexContainer
    ) -> None:
        coordinator.start()
        for _ in range(8):
            coordinator.notify()
            await asyncio.sleep(DEBOUNCE / 5)
        await wait_until(lambda: coordinator.rebuild_count == 1)
        await asyncio.sleep(DEBOUNCE * 3)

        assert rebuild.calls == [2]
        assert container.generation == 2
        await coordinator.stop()

    @pytest.mark.asyncio
    async def test_timer_rearmed_by_each_event(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild
    ) -> None:
        coordinator.start()
        last_event = time.monotonic()
        for _ in range(4):
            coordinator.notify()
            last_event = time.monotonic()
            await asyncio.sleep(DEBOUNCE / 2)
        await wait_until(lambda: len(rebuild.calls) == 1)

        assert time.monotonic() - last_event >= DEBOUNCE - 0.01
        assert rebuild.calls == [2]
        await coordinator.stop()

    @pytest.mark.asyncio
    async def test_separate_bursts_rebuild_separately(
        self, coordinator: ReloadCoordinator, container: IndexContainer
    ) -> None:
        coordinator.start()
        coordinator.notify()
        await wait_until(lambda: coordinator.rebuild_count == 1)
        coordinator.notify()
        await wait_until(lambda: coordinator.rebuild_count == 2)
        assert container.generation == 3
        await coordinator.stop()

    @pytest.mark.asyncio
    async def test_events_during_rebuild_trigger_one_more(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild
    ) -> None:
        rebuild.gate = threading.Event()
        coordinator.start()
        coordinator.notify()
        await wait_until(rebuild.entered.is_set)

        for _ in range(5):
            coordinator.notify()
        assert coordinator.pending == 5
        rebuild.gate.set()

        await wait_until(lambda: coordinator.rebuild_count == 2)
        await asyncio.sleep(DEBOUNCE * 3)
        assert rebuild.calls == [2, 3]
        await coordinator.stop()


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_rebuild_keeps_previous_snapshot(
        self,
        coordinator: ReloadCoordinator,
        rebuild: FakeRebuild,
        container: IndexContainer,
        collector: SiteCollector,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        before = container.snapshot()
        rebuild.error = ConfigError("posts.yml: posts[0]: missing required key 'date'")
        coordinator.start()
        coordinator.notify()
        await wait_until(lambda: coordinator.failure_count == 1)

        assert container.snapshot() is before
        assert latest_post(container.snapshot()).slug == "hello"
        failure = collector.log.latest(ReloadFailed)
        assert failure is not None
        assert failure.error_type == "ConfigError"
        assert "Reload failed" in capsys.readouterr().err

        # The loop survives and the next good build goes live.
        rebuild.error = None
        coordinator.notify()
        await wait_until(lambda: coordinator.rebuild_count == 1)
        assert container.generation == 2
        await coordinator.stop()

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild, container: IndexContainer
    ) -> None:
        rebuild.error = KeyError("surprise")
        task = coordinator.start()
        coordinator.notify()
        await wait_until(lambda: coordinator.failure_count == 1)
        assert not task.done()
        assert container.generation == 1
        await coordinator.stop()

    @pytest.mark.asyncio
    async def test_lock_error_is_fatal(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild
    ) -> None:
        rebuild.error = LockError("poisoned")
        task = coordinator.start()
        coordinator.notify()
        with pytest.raises(LockError):
            await asyncio.wait_for(task, timeout=5.0)
        assert coordinator.failure_count == 0


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_while_accumulating(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild
    ) -> None:
        coordinator.start()
        coordinator.notify()
        await wait_until(lambda: coordinator.state == "accumulating")
        await coordinator.stop()
        await asyncio.sleep(DEBOUNCE * 2)

        assert rebuild.calls == []
        assert coordinator.state == "idle"

    @pytest.mark.asyncio
    async def test_cancel_while_rebuilding_never_swaps(
        self, coordinator: ReloadCoordinator, rebuild: FakeRebuild, container: IndexContainer
    ) -> None:
        rebuild.gate = threading.Event()
        coordinator.start()
        coordinator.notify()
        await wait_until(rebuild.entered.is_set)

        await coordinator.stop()
        rebuild.gate.set()
        await asyncio.sleep(DEBOUNCE)

        assert container.generation == 1
        assert coordinator.rebuild_count == 0

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, coordinator: ReloadCoordinator) -> None:
        await coordinator.stop()
        coordinator.start()
        await coordinator.stop()
        await coordinator.stop()


# ---------------------------------------------------------------------------
# Change stream and observability
# ---------------------------------------------------------------------------


class TestChangeStream:
    @pytest.mark.asyncio
    async def test_consumes_change_iterator(
        self,
        coordinator: ReloadCoordinator,
        collector: SiteCollector,
        container: IndexContainer,
    ) -> None:
        async def changes() -> AsyncIterator[ChangeEvent]:
            for name in ("a.md", "b.md", "a.md"):
                yield ChangeEvent(path=Path("/site/posts") / name, kind="modified", category="posts")

        coordinator.start(changes())
        await wait_until(lambda: coordinator.rebuild_count == 1)

        assert len(collector.log.query(event_type=ChangeDetected)) == 3
        assert collector.log.query(event_type=ChangeDetected, path="b.md")[0].category == "posts"
        built = collector.log.latest(IndexBuilt)
        assert built is not None
        assert built.generation == 2
        swapped = collector.log.latest(IndexSwapped)
        assert swapped is not None
        assert (swapped.old_generation, swapped.new_generation) == (1, 2)
        assert swapped.trigger_count == 3
        assert container.generation == 2
        await coordinator.stop()

    @pytest.mark.asyncio
    async def test_failing_stream_ends_coordinator(
        self,
        coordinator: ReloadCoordinator,
        collector: SiteCollector,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        async def changes() -> AsyncIterator[ChangeEvent]:
            yield ChangeEvent(path=Path("/site/posts/a.md"), kind="modified", category="posts")
            raise OSError("inotify watch limit reached")

        task = coordinator.start(changes())
        with pytest.raises(OSError, match="inotify"):
            await asyncio.wait_for(task, timeout=5.0)

        assert coordinator.state == "idle"
        failure = collector.log.latest(ReloadFailed)
        assert failure is not None
        assert failure.error_type == "OSError"
        assert "Change stream failed" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_watcher_failure_surfaces_as_watch_error(
        self, coordinator: ReloadCoordinator
    ) -> None:
        async def changes() -> AsyncIterator[ChangeEvent]:
            raise WatchError(FileNotFoundError("/site"))
            yield  # pragma: no cover

        task = coordinator.start(changes())
        with pytest.raises(WatchError, match="File watcher stopped"):
            await asyncio.wait_for(task, timeout=5.0)

    @pytest.mark.asyncio
    async def test_finished_stream_keeps_notify_working(
        self, coordinator: ReloadCoordinator, container: IndexContainer
    ) -> None:
        async def changes() -> AsyncIterator[ChangeEvent]:
            return
            yield  # pragma: no cover

        task = coordinator.start(changes())
        await asyncio.sleep(DEBOUNCE)
        assert not task.done()

        coordinator.notify()
        await wait_until(lambda: coordinator.rebuild_count == 1)
        assert container.generation == 2
        await coordinator.stop()

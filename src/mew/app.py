"""Mew application — site loading, Chirp wiring, and the public entry points.

A ``Site`` bundles everything the running server shares: the resolved
configuration, the renderer, the index container, and the event collector.
``create_app`` puts a Chirp app in front of it and hooks the watcher and the
reload coordinator into the app's startup and shutdown.
"""

from __future__ import annotations

import os
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from mew._errors import LockError
from mew.config import ServerConfig
from mew.config_loader import load_config, load_content
from mew.content.container import IndexContainer
from mew.content.index import ContentIndex, build_index, load_templates
from mew.content.renderer import ContentRenderer
from mew.observability import EventLog, SiteCollector

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from chirp import App

    from mew.reactive.reloader import ReloadCoordinator


def build_site_index(
    config: ServerConfig,
    renderer: Callable[[Path], str],
    *,
    generation: int = 0,
) -> ContentIndex:
    """Read the content records and templates from disk and build an index.

    This is the whole rebuild: nothing from a previous build is reused.

    Raises:
        ConfigError: pages.yml or posts.yml is unreadable or invalid.
        ContentError: The build itself failed.

    """
    pages_config, posts_config = load_content(config)
    templates = load_templates(config.templates_dir)
    return build_index(
        pages_config,
        posts_config,
        renderer,
        templates=templates,
        strict_redirects=config.strict_redirects,
        generation=generation,
    )


@dataclass(frozen=True, slots=True)
class Site:
    """A loaded site, ready to be served.

    Attributes:
        config: Resolved server configuration.
        renderer: Source renderer shared by every build.
        container: Holder of the live index snapshot.
        collector: Event collector for builds and reloads.
        load_ms: Time the initial build took.

    """

    config: ServerConfig
    renderer: Callable[[Path], str]
    container: IndexContainer
    collector: SiteCollector
    load_ms: float = 0.0

    def rebuild(self, generation: int) -> ContentIndex:
        """Build a fresh index from disk (called off the event loop)."""
        return build_site_index(self.config, self.renderer, generation=generation)


def load_site(
    root: str | Path = ".",
    *,
    renderer: Callable[[Path], str] | None = None,
    **overrides: object,
) -> Site:
    """Load configuration and build the first index.

    Args:
        root: Path to the site root directory.
        renderer: Source renderer; defaults to a Patitas-backed ContentRenderer.
        **overrides: Override ServerConfig fields.

    Raises:
        ConfigError: Configuration is missing or invalid.
        ContentError: The initial build failed.

    """
    config = load_config(Path(root), **overrides)
    if config.syntaxes_dir is not None:
        print(
            f"  Note: syntaxes_path ({config.syntaxes_path}) is ignored; "
            "code highlighting uses the built-in Rosettes lexers.",
            file=sys.stderr,
        )

    renderer = renderer if renderer is not None else ContentRenderer()
    t0 = time.perf_counter()
    index = build_site_index(config, renderer, generation=1)
    load_ms = (time.perf_counter() - t0) * 1000

    collector = SiteCollector(EventLog())
    collector.record_build(index, duration_ms=load_ms)

    return Site(
        config=config,
        renderer=renderer,
        container=IndexContainer(index),
        collector=collector,
        load_ms=load_ms,
    )


def _create_chirp_app(config: ServerConfig) -> App:
    """Create the Chirp App.  Templates are not Chirp's: they live in the index."""
    from chirp import App, AppConfig

    app_config = AppConfig(
        debug=False,
        host=config.bind_addr,
        port=config.bind_port,
    )
    return App(config=app_config)


def _mount_static_files(app: App, config: ServerConfig) -> None:
    """Serve the static directory at the site root, ahead of content routes."""
    from chirp.middleware import StaticFiles

    if config.static_dir.is_dir():
        app.add_middleware(StaticFiles(directory=config.static_dir, prefix="/"))


def _wire_reloader(site: Site, app: App) -> ReloadCoordinator:
    """Run the watcher and reload coordinator for the app's lifetime.

    Flow:
        on_startup  -> start watchfiles thread, spawn the coordinator task
        file change -> debounce -> rebuild on a worker thread -> swap
        on_shutdown -> cancel the coordinator, stop the watcher thread

    """
    import asyncio

    from mew.content.watcher import ContentWatcher
    from mew.reactive.reloader import ReloadCoordinator

    watcher = ContentWatcher(site.config)
    coordinator = ReloadCoordinator(
        site.container,
        site.rebuild,
        debounce=site.config.debounce,
        collector=site.collector,
    )

    @app.on_startup
    async def _start_reloader() -> None:
        watcher.start()
        task = coordinator.start(watcher.changes())
        task.add_done_callback(_on_reloader_exit)

    @app.on_shutdown
    async def _stop_reloader() -> None:
        await coordinator.stop()
        await asyncio.to_thread(watcher.stop)

    return coordinator


def _on_reloader_exit(task: asyncio.Task[None]) -> None:
    """A coordinator that dies (lock failure, dead watcher) takes the process with it."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        return
    kind = "Index lock failure" if isinstance(exc, LockError) else "Reloader crashed"
    print(f"  {kind}: {exc}; shutting down", file=sys.stderr)
    os.kill(os.getpid(), signal.SIGTERM)


def create_app(site: Site, *, watch: bool = True) -> App:
    """Create the Chirp app serving ``site``.

    Args:
        site: A loaded site.
        watch: Rebuild the index when its inputs change.

    """
    from mew.content.router import ContentRouter, SiteViews

    app = _create_chirp_app(site.config)
    _mount_static_files(app, site.config)

    router = ContentRouter(app, SiteViews(site.container), collector=site.collector)
    router.register()

    if watch:
        _wire_reloader(site, app)
    return app


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def serve(root: str | Path = ".", *, watch: bool = True, **kwargs: object) -> None:
    """Serve the site, rebuilding the index whenever its inputs change.

    Args:
        root: Path to the site root directory.
        watch: Watch the content and rebuild on change.
        **kwargs: Override ServerConfig fields.

    """
    from mew.banner import print_banner

    site = load_site(root, **kwargs)
    app = create_app(site, watch=watch)

    index = site.container.snapshot()
    print_banner(
        site.config,
        index,
        mode="serve",
        watching=watch,
        load_ms=site.load_ms,
        warnings=list(index.warnings),
    )

    # Lifecycle events from Pounce land in the same log as reload events.
    app.run(
        host=site.config.bind_addr,
        port=site.config.bind_port,
        lifecycle_collector=site.collector,
    )


def check(root: str | Path = ".", **kwargs: object) -> ContentIndex:
    """Build the index once and report on it without serving.

    Args:
        root: Path to the site root directory.
        **kwargs: Override ServerConfig fields.

    Raises:
        ConfigError: Configuration is missing or invalid.
        ContentError: The build failed.

    """
    from mew.banner import print_banner

    site = load_site(root, **kwargs)
    index = site.container.snapshot()
    print_banner(
        site.config,
        index,
        mode="check",
        load_ms=site.load_ms,
        warnings=list(index.warnings),
    )
    return index

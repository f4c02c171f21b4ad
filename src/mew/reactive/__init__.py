"""Reactive layer — file changes to fresh snapshots.

Debounces watcher notifications and rebuild-and-swaps the content index.
"""

from mew.reactive.reloader import DEFAULT_DEBOUNCE, ReloadCoordinator

__all__ = [
    "DEFAULT_DEBOUNCE",
    "ReloadCoordinator",
]

"""Mew error hierarchy.

All mew-specific errors inherit from MewError for easy catching.

Build failures share the ``ContentError`` base so the reload loop can treat
"this rebuild attempt failed" as one case, while ``LockError`` stays apart:
it signals a broken container invariant and must never be swallowed.
"""

from __future__ import annotations

from pathlib import Path


class MewError(Exception):
    """Base error for all mew operations."""


class ConfigError(MewError):
    """Invalid, missing, or unreadable configuration."""


class ContentError(MewError):
    """A content index build failed (reading, rendering, routing)."""


class SourceReadError(ContentError):
    """A content source file is missing or unreadable."""

    def __init__(self, path: Path, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Cannot read source file {path}{detail}")


class RenderError(ContentError):
    """A content source file could not be transformed to HTML."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Rendering failed for {path}: {cause}")


class DuplicateURLError(ContentError):
    """Two routing entries claim the same URL."""

    def __init__(self, urls: tuple[str, ...], detail: str = "") -> None:
        self.urls = urls
        suffix = f" ({detail})" if detail else ""
        super().__init__(f"Ambiguous URL {', '.join(urls)}{suffix}")


class RedirectTargetError(ContentError):
    """An alternate URL points at a URL no page or post is served at."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Redirect {source} -> {target} has no content at its target")


class TemplateLoadError(ContentError):
    """A template in the templates directory failed to compile."""

    def __init__(self, name: str, cause: BaseException) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"Template {name} failed to load: {cause}")


class LockError(MewError):
    """The index container lock is unavailable or was misused."""


class WatchError(MewError):
    """The file watcher stopped and no further changes will be seen."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"File watcher stopped: {type(cause).__name__}: {cause}")


class ViewError(MewError):
    """A page could not be rendered for a request."""

"""Mew configuration.

ServerConfig is the central configuration object, frozen after creation and
passed explicitly to every component that needs a resolved path.  The page,
post and feed records are the already-validated content configuration the
index builder consumes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

# Configuration file names, looked up in the site root.
SERVER_CONFIG = "server.yml"
PAGES_CONFIG = "pages.yml"
POSTS_CONFIG = "posts.yml"

CONFIG_FILES: tuple[str, ...] = (SERVER_CONFIG, PAGES_CONFIG, POSTS_CONFIG)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Configuration for a Mew site server.

    Attributes:
        root: Path to the site root directory (contains the YAML config files).
              Always resolved to an absolute path on construction.
        bind_addr: Bind address for the HTTP server.
        bind_port: Bind port for the HTTP server.
        static_files_path: Directory of static files served as-is.
        templates_path: Directory containing Kida templates.
        pages_path: Directory containing page sources.
        posts_path: Directory containing post sources.
        syntaxes_path: Optional directory of extra syntax definitions.
        debounce_ms: Quiet period after the last file change before a rebuild.
        strict_redirects: Fail a build when an alternate URL points nowhere.

    """

    root: Path = field(default_factory=Path.cwd)
    bind_addr: str = "127.0.0.1"
    bind_port: int = 8080
    static_files_path: str = "static"
    templates_path: str = "templates"
    pages_path: str = "pages"
    posts_path: str = "posts"
    syntaxes_path: str | None = None
    debounce_ms: int = 1000
    strict_redirects: bool = False

    def __post_init__(self) -> None:
        # Resolve root to absolute so that watchfiles (which returns
        # absolute paths) can be compared via Path.relative_to().
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())

    @property
    def static_dir(self) -> Path:
        """Absolute path to the static files directory."""
        return self.root / self.static_files_path

    @property
    def templates_dir(self) -> Path:
        """Absolute path to the templates directory."""
        return self.root / self.templates_path

    @property
    def pages_dir(self) -> Path:
        """Absolute path to the page sources directory."""
        return self.root / self.pages_path

    @property
    def posts_dir(self) -> Path:
        """Absolute path to the post sources directory."""
        return self.root / self.posts_path

    @property
    def syntaxes_dir(self) -> Path | None:
        """Absolute path to the syntax definitions directory, if configured."""
        if self.syntaxes_path is None:
            return None
        return self.root / self.syntaxes_path

    @property
    def config_files(self) -> tuple[Path, ...]:
        """Absolute paths of the three configuration files."""
        return tuple(self.root / name for name in CONFIG_FILES)

    @property
    def debounce(self) -> float:
        """Debounce window in seconds."""
        return self.debounce_ms / 1000


@dataclass(frozen=True, slots=True)
class PageRecord:
    """One entry of ``pages.yml``.

    ``file_path`` is absolute (resolved against the pages directory).
    """

    file_path: Path
    title: str
    url: str
    alternate_urls: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PostRecord:
    """One entry of ``posts.yml``.

    ``date`` is naive local time; it is never converted between zones.
    """

    file_path: Path
    title: str
    date: datetime
    slug: str
    alternate_urls: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FeedSettings:
    """The ``rss`` block of ``posts.yml``."""

    title: str
    description: str
    url: str
    count: int


@dataclass(frozen=True, slots=True)
class PagesConfig:
    """Deserialized ``pages.yml``."""

    pages: tuple[PageRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class PostsConfig:
    """Deserialized ``posts.yml``."""

    feed: FeedSettings
    posts: tuple[PostRecord, ...] = ()

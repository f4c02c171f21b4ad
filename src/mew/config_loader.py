"""Load ServerConfig and content records from the site root's YAML files.

``server.yml`` is read once at startup and merged with CLI overrides (CLI
wins).  ``pages.yml`` and ``posts.yml`` are read at startup and again on every
reload, so every failure here is a ``ConfigError`` naming the offending file.
"""

from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import yaml

from mew._errors import ConfigError
from mew.config import (
    PAGES_CONFIG,
    POSTS_CONFIG,
    SERVER_CONFIG,
    FeedSettings,
    PageRecord,
    PagesConfig,
    PostRecord,
    PostsConfig,
    ServerConfig,
)

# Accepted post date layouts, tried in order.
_DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d")

# server.yml keys copied onto ServerConfig
_SERVER_KEYS: dict[str, type] = {
    "bind_addr": str,
    "bind_port": int,
    "static_files_path": str,
    "templates_path": str,
    "pages_path": str,
    "posts_path": str,
    "syntaxes_path": str,
    "debounce_ms": int,
    "strict_redirects": bool,
}


def load_config(root: Path, **overrides: object) -> ServerConfig:
    """Load ServerConfig from ``root/server.yml`` merged with overrides.

    Overrides whose value is None are ignored so CLI defaults don't clobber
    file values.

    Raises:
        ConfigError: If server.yml is missing, malformed, or ill-typed.

    """
    path = root / SERVER_CONFIG
    data = _read_yaml(path)

    file_config: dict[str, object] = {}
    for key, expected in _SERVER_KEYS.items():
        if key not in data or data[key] is None:
            continue
        value = data[key]
        if isinstance(value, bool) and expected is not bool:
            msg = f"{path}: '{key}' must be {expected.__name__}, got a boolean"
            raise ConfigError(msg)
        if not isinstance(value, expected):
            msg = f"{path}: '{key}' must be {expected.__name__}, got {type(value).__name__}"
            raise ConfigError(msg)
        file_config[key] = value

    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    _check_ranges(path, merged)
    try:
        return ServerConfig(root=root, **merged)  # type: ignore[arg-type]
    except TypeError as exc:
        msg = f"Unknown server setting: {exc}"
        raise ConfigError(msg) from exc


def _check_ranges(path: Path, settings: dict[str, object]) -> None:
    """Reject values that type-check but cannot be used."""
    port = settings.get("bind_port")
    if isinstance(port, int) and not 1 <= port <= 65535:
        msg = f"{path}: 'bind_port' must be between 1 and 65535, got {port}"
        raise ConfigError(msg)
    debounce = settings.get("debounce_ms")
    if isinstance(debounce, int) and debounce < 0:
        msg = f"{path}: 'debounce_ms' must be non-negative, got {debounce}"
        raise ConfigError(msg)


def load_content(config: ServerConfig) -> tuple[PagesConfig, PostsConfig]:
    """Read ``pages.yml`` and ``posts.yml`` from the site root.

    Page and post ``file_path`` entries are resolved against the configured
    pages and posts directories.

    Raises:
        ConfigError: On any unreadable file or invalid record.

    """
    return load_pages(config), load_posts(config)


def load_pages(config: ServerConfig) -> PagesConfig:
    """Read and validate ``pages.yml``."""
    path = config.root / PAGES_CONFIG
    data = _read_yaml(path)
    entries = _require_list(data, "pages", path)

    pages: list[PageRecord] = []
    for i, entry in enumerate(entries):
        where = f"{path}: pages[{i}]"
        record = _require_mapping(entry, where)
        pages.append(
            PageRecord(
                file_path=config.pages_dir / _require_str(record, "file_path", where),
                title=_require_str(record, "title", where),
                url=_require_str(record, "url", where),
                alternate_urls=_optional_str_list(record, "alternate_urls", where),
            )
        )
    return PagesConfig(pages=tuple(pages))


def load_posts(config: ServerConfig) -> PostsConfig:
    """Read and validate ``posts.yml`` (posts plus the ``rss`` block)."""
    path = config.root / POSTS_CONFIG
    data = _read_yaml(path)
    entries = _require_list(data, "posts", path)

    posts: list[PostRecord] = []
    for i, entry in enumerate(entries):
        where = f"{path}: posts[{i}]"
        record = _require_mapping(entry, where)
        if "date" not in record:
            msg = f"{where}: missing required key 'date'"
            raise ConfigError(msg)
        posts.append(
            PostRecord(
                file_path=config.posts_dir / _require_str(record, "file_path", where),
                title=_require_str(record, "title", where),
                date=parse_post_date(record["date"], where),
                slug=_require_str(record, "slug", where),
                alternate_urls=_optional_str_list(record, "alternate_urls", where),
                tags=_optional_str_list(record, "tags", where),
            )
        )

    rss = _require_mapping(data.get("rss"), f"{path}: rss")
    where = f"{path}: rss"
    count = rss.get("count")
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        msg = f"{where}: 'count' must be a non-negative integer"
        raise ConfigError(msg)
    feed = FeedSettings(
        title=_require_str(rss, "title", where),
        description=_require_str(rss, "description", where),
        url=_require_str(rss, "url", where),
        count=count,
    )
    return PostsConfig(feed=feed, posts=tuple(posts))


def parse_post_date(value: object, where: str = "date") -> datetime:
    """Turn a ``date`` value into a naive datetime.

    PyYAML already converts unquoted ISO dates and timestamps, so native
    ``date``/``datetime`` values are accepted alongside the three string
    layouts.  Time zone info is dropped, never converted.

    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        text = value.strip()
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
    msg = f"{where}: invalid date {value!r} (expected YYYY-MM-DD[ HH:MM[:SS]])"
    raise ConfigError(msg)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML mapping file, raising ConfigError on any failure."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read config file {path}: {exc}"
        raise ConfigError(msg) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"Malformed YAML in {path}: {exc}"
        raise ConfigError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path}: top level must be a mapping"
        raise ConfigError(msg)
    return data


def _require_mapping(value: object, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        msg = f"{where}: expected a mapping"
        raise ConfigError(msg)
    return value


def _require_list(data: dict[str, Any], key: str, path: Path) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        msg = f"{path}: '{key}' must be a list"
        raise ConfigError(msg)
    return value


def _require_str(record: dict[str, Any], key: str, where: str) -> str:
    if key not in record:
        msg = f"{where}: missing required key '{key}'"
        raise ConfigError(msg)
    value = record[key]
    # Bare numbers (e.g. slug: 2023) are legitimate strings in these files.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        msg = f"{where}: '{key}' must be a string"
        raise ConfigError(msg)
    return value


def _optional_str_list(record: dict[str, Any], key: str, where: str) -> tuple[str, ...]:
    value = record.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"{where}: '{key}' must be a list of strings"
        raise ConfigError(msg)
    return tuple(value)


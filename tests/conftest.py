"""Shared test fixtures for mew."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
import yaml

from mew.config import FeedSettings, PageRecord, PagesConfig, PostRecord, PostsConfig, ServerConfig
from mew.content.renderer import ContentRenderer

TEMPLATES: dict[str, str] = {
    "latest_post.html": (
        "{% if post %}<h1>{{ post.title }}</h1>{{ post.content_html | safe }}"
        "{% else %}no posts{% endif %}"
    ),
    "post.html": "<h1>{{ post.title }}</h1><time>{{ post.url }}</time>{{ post.content_html | safe }}",
    "page.html": "<h1>{{ page.title }}</h1>{{ page.content_html | safe }}",
    "tag.html": "<h1>#{{ tag }}</h1>{% for p in posts %}<li>{{ p.url }}</li>{% endfor %}",
    "archive.html": "{% for p in posts %}<li>{{ p.url }}</li>{% endfor %}",
}

DEFAULT_PAGES: list[dict[str, Any]] = [
    {
        "file_path": "about.md",
        "title": "About",
        "url": "/about",
        "alternate_urls": ["/old-about"],
    },
]

DEFAULT_POSTS: list[dict[str, Any]] = [
    {
        "file_path": "hello.md",
        "title": "Hello",
        "date": "2023-05-01",
        "slug": "hello",
        "tags": ["intro", "meta"],
    },
    {
        "file_path": "second.md",
        "title": "Second",
        "date": "2023-06-10 08:30",
        "slug": "second",
        "tags": ["meta"],
        "alternate_urls": ["/posts/second.html"],
    },
    {
        "file_path": "third.html",
        "title": "Third",
        "date": "2024-01-02 12:00:00",
        "slug": "third",
    },
]

DEFAULT_RSS: dict[str, Any] = {
    "title": "Test Blog",
    "description": "Posts about testing",
    "url": "https://blog.example.com",
    "count": 2,
}


def fake_markdown(text: str) -> str:
    """Deterministic stand-in for the Patitas pipeline."""
    return f"<md>{text.strip()}</md>"


def write_yaml(path: Path, data: object) -> None:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


def write_content_config(
    root: Path,
    *,
    pages: list[dict[str, Any]] | None = None,
    posts: list[dict[str, Any]] | None = None,
    rss: dict[str, Any] | None = None,
) -> None:
    """(Re)write pages.yml and posts.yml under ``root``."""
    write_yaml(root / "pages.yml", {"pages": DEFAULT_PAGES if pages is None else pages})
    write_yaml(
        root / "posts.yml",
        {"posts": DEFAULT_POSTS if posts is None else posts, "rss": rss or DEFAULT_RSS},
    )


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """Create a complete site on disk.

    One page with a legacy URL, three posts (two markdown, one HTML), all
    five templates, and a static directory.
    """
    root = tmp_path / "site"
    root.mkdir()
    write_yaml(root / "server.yml", {"bind_addr": "127.0.0.1", "bind_port": 8123})
    write_content_config(root)

    pages = root / "pages"
    pages.mkdir()
    (pages / "about.md").write_text("# About me\n", encoding="utf-8")

    posts = root / "posts"
    posts.mkdir()
    (posts / "hello.md").write_text("Hello *world*\n", encoding="utf-8")
    (posts / "second.md").write_text("Second post\n", encoding="utf-8")
    (posts / "third.html").write_text("<p>Third, raw</p>", encoding="utf-8")

    templates = root / "templates"
    templates.mkdir()
    for name, source in TEMPLATES.items():
        (templates / name).write_text(source, encoding="utf-8")

    static = root / "static"
    static.mkdir()
    (static / "style.css").write_text("body { margin: 0; }\n", encoding="utf-8")

    return root


@pytest.fixture
def server_config(site_root: Path) -> ServerConfig:
    return ServerConfig(root=site_root)


@pytest.fixture
def renderer() -> ContentRenderer:
    """ContentRenderer with the fake markdown pipeline."""
    return ContentRenderer(markdown=fake_markdown)


def stem_renderer(path: Path) -> str:
    """Renderer that never touches the disk."""
    return f"<p>{path.stem}</p>"


def page_record(name: str, url: str, *alternates: str, title: str | None = None) -> PageRecord:
    return PageRecord(
        file_path=Path("/src/pages") / name,
        title=title or name,
        url=url,
        alternate_urls=alternates,
    )


def post_record(
    name: str,
    when: str,
    slug: str | None = None,
    *,
    tags: tuple[str, ...] = (),
    alternates: tuple[str, ...] = (),
) -> PostRecord:
    return PostRecord(
        file_path=Path("/src/posts") / name,
        title=name.title(),
        date=datetime.fromisoformat(when),
        slug=slug or name,
        alternate_urls=alternates,
        tags=tags,
    )


def posts_config(*posts: PostRecord, count: int = 10) -> PostsConfig:
    return PostsConfig(
        feed=FeedSettings(
            title="Feed",
            description="All posts",
            url="https://example.com",
            count=count,
        ),
        posts=posts,
    )


def pages_config(*pages: PageRecord) -> PagesConfig:
    return PagesConfig(pages=pages)

"""Content index — the immutable, queryable snapshot of a site.

``build_index`` turns validated page and post records into a ``ContentIndex``:
rendered pages and posts, URL lookup tables, the redirect table, the tag
index, and feed metadata.  A build either returns a complete index or raises
a ``ContentError``; there is no partial result.

The query functions at the bottom of this module never sort or scan: every
ordering is fixed at build time.

Thread Safety:
    A built index is never mutated.  Every collection is a tuple or a
    ``MappingProxyType``, so a snapshot can be shared freely across threads
    once the container hands it out.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from mew._errors import DuplicateURLError, RedirectTargetError, TemplateLoadError
from mew._types import Tag, UrlPath
from mew.content.tables import (
    RedirectTable,
    RedirectTableBuilder,
    TagIndex,
    TagIndexBuilder,
    normalize_url,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from kida import Environment

    from mew.config import PagesConfig, PostRecord, PostsConfig


@dataclass(frozen=True, slots=True)
class Page:
    """A standalone page served at a configured URL."""

    url: UrlPath
    title: str
    content_html: str


@dataclass(frozen=True, slots=True)
class Post:
    """A dated post served at ``/{year}/{month}/{day}/{slug}``."""

    url: UrlPath
    title: str
    content_html: str
    date: datetime
    slug: str
    tags: tuple[Tag, ...] = ()


@dataclass(frozen=True, slots=True)
class Redirect:
    """Resolution outcome for an alternate URL: send the client elsewhere."""

    location: UrlPath


@dataclass(frozen=True, slots=True)
class FeedMetadata:
    """Channel-level settings of the RSS feed."""

    title: str
    description: str
    url: str
    count: int


type Resolved = Page | Post | Redirect


@dataclass(frozen=True, slots=True)
class ContentIndex:
    """One fully built snapshot of the site.

    Attributes:
        pages: Pages in configuration order.
        posts: Posts ordered newest first (stable for equal dates).
        page_urls: Canonical URL -> position in ``pages``.
        post_urls: Canonical URL -> position in ``posts``.
        redirects: Alternate URL -> canonical URL.
        tags: Tag -> positions in ``posts``.
        feed: RSS channel settings.
        generation: Build number, stamped by whoever requested the build.
        templates: Template environment loaded alongside this content.
        warnings: Non-fatal problems noticed during the build.

    ``generation``, ``templates`` and ``warnings`` do not take part in
    equality, so two builds of unchanged inputs compare equal.

    """

    pages: tuple[Page, ...]
    posts: tuple[Post, ...]
    page_urls: Mapping[UrlPath, int]
    post_urls: Mapping[UrlPath, int]
    redirects: RedirectTable
    tags: TagIndex
    feed: FeedMetadata
    generation: int = field(default=0, compare=False)
    templates: Environment | None = field(default=None, compare=False, repr=False)
    warnings: tuple[str, ...] = field(default=(), compare=False)

    def summary(self) -> dict[str, int]:
        """Counts used for build reports and the stats endpoint."""
        return {
            "generation": self.generation,
            "pages": len(self.pages),
            "posts": len(self.posts),
            "tags": len(self.tags),
            "redirects": len(self.redirects),
            "warnings": len(self.warnings),
        }


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def post_url(date: datetime, slug: str) -> UrlPath:
    """Canonical URL of a post: ``/YYYY/MM/DD/slug``."""
    return f"/{date.year:04d}/{date.month:02d}/{date.day:02d}/{slug}"


def order_posts(records: tuple[PostRecord, ...]) -> list[PostRecord]:
    """Newest first; ``sorted`` is stable so equal dates keep config order."""
    return sorted(records, key=lambda record: record.date, reverse=True)


def _unique_tags(tags: tuple[str, ...]) -> tuple[Tag, ...]:
    return tuple(dict.fromkeys(tags))


def build_index(
    pages_config: PagesConfig,
    posts_config: PostsConfig,
    renderer: Callable[[Path], str],
    *,
    templates: Environment | None = None,
    strict_redirects: bool = False,
    generation: int = 0,
) -> ContentIndex:
    """Build a complete ContentIndex from configuration records.

    Args:
        pages_config: Validated ``pages.yml`` records.
        posts_config: Validated ``posts.yml`` records and feed settings.
        renderer: ``path -> html`` callable (normally a ContentRenderer).
        templates: Template environment to carry inside the snapshot.
        strict_redirects: Treat a redirect that shadows live content, or that
            points at a URL with no content, as an error instead of a warning.
        generation: Build number stamped on the result.

    Raises:
        SourceReadError: A source file is missing or unreadable.
        RenderError: A source file could not be rendered.
        DuplicateURLError: Two entries share a canonical URL, one alternate
            URL redirects to two different places, or (``strict_redirects``)
            an alternate URL shadows a canonical one.
        RedirectTargetError: ``strict_redirects`` is set and an alternate
            URL points at a URL nothing is served at.

    """
    owners: dict[UrlPath, str] = {}
    redirects = RedirectTableBuilder()
    tags = TagIndexBuilder()

    def claim(url: UrlPath, owner: str) -> None:
        previous = owners.get(url)
        if previous is not None:
            raise DuplicateURLError((url,), f"claimed by {previous} and {owner}")
        owners[url] = owner

    pages: list[Page] = []
    page_urls: dict[UrlPath, int] = {}
    for record in pages_config.pages:
        html = renderer(record.file_path)
        url = normalize_url(record.url)
        claim(url, f"page {record.file_path.name}")
        page_urls[url] = len(pages)
        pages.append(Page(url=url, title=record.title, content_html=html))
        redirects.add_many(record.alternate_urls, url)

    posts: list[Post] = []
    post_urls: dict[UrlPath, int] = {}
    for record in order_posts(posts_config.posts):
        html = renderer(record.file_path)
        url = normalize_url(post_url(record.date, record.slug))
        claim(url, f"post {record.file_path.name}")
        position = len(posts)
        post_tags = _unique_tags(record.tags)
        post_urls[url] = position
        posts.append(
            Post(
                url=url,
                title=record.title,
                content_html=html,
                date=record.date,
                slug=record.slug,
                tags=post_tags,
            )
        )
        redirects.add_many(record.alternate_urls, url)
        tags.add(position, post_tags)

    redirect_table = redirects.build()
    warnings = _check_redirects(redirect_table, owners, strict=strict_redirects)

    feed = posts_config.feed
    return ContentIndex(
        pages=tuple(pages),
        posts=tuple(posts),
        page_urls=MappingProxyType(page_urls),
        post_urls=MappingProxyType(post_urls),
        redirects=redirect_table,
        tags=tags.build(),
        feed=FeedMetadata(
            title=feed.title,
            description=feed.description,
            url=feed.url,
            count=feed.count,
        ),
        generation=generation,
        templates=templates,
        warnings=tuple(warnings),
    )


def _check_redirects(
    table: RedirectTable,
    owners: Mapping[UrlPath, str],
    *,
    strict: bool,
) -> list[str]:
    """Validate redirect sources and targets against canonical URLs."""
    warnings: list[str] = []
    for source, target in table.items():
        if source in owners:
            if strict:
                raise DuplicateURLError(
                    (source,), f"alternate URL shadows the {owners[source]} served there"
                )
            warnings.append(f"alternate URL {source} shadows the {owners[source]} served there")
        if target in owners:
            continue
        if strict:
            raise RedirectTargetError(source, target)
        warnings.append(f"redirect {source} -> {target} points at no content")
    return warnings


def load_templates(path: Path) -> Environment:
    """Create the template environment and compile every template in ``path``.

    Compiling up front means a syntax error fails the build that picked it
    up, instead of the first request that needs the template.  A missing
    directory gives an environment with no templates.

    Raises:
        TemplateLoadError: A template failed to compile.

    """
    from kida import Environment, FileSystemLoader, TemplateError

    env = Environment(loader=FileSystemLoader(str(path)), auto_reload=False)
    if not path.is_dir():
        return env

    for file in sorted(p for p in path.rglob("*") if p.is_file()):
        name = file.relative_to(path).as_posix()
        if any(part.startswith(".") for part in file.relative_to(path).parts):
            continue
        try:
            env.get_template(name)
        except TemplateError as exc:
            raise TemplateLoadError(name, exc) from exc
    return env


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def resolve(index: ContentIndex, url: str) -> Resolved | None:
    """Resolve a request path to a redirect, a post, a page, or nothing.

    Lookup order is fixed: redirect table, then posts, then pages.  An
    alternate URL always redirects, even if it also names live content.

    """
    path = normalize_url(url)

    target = index.redirects.get(path)
    if target is not None:
        return Redirect(location=target)

    position = index.post_urls.get(path)
    if position is not None:
        return index.posts[position]

    position = index.page_urls.get(path)
    if position is not None:
        return index.pages[position]

    return None


def posts_ordered_by_date(index: ContentIndex) -> tuple[Post, ...]:
    """All posts, newest first."""
    return index.posts


def posts_with_tag(index: ContentIndex, tag: Tag) -> tuple[Post, ...]:
    """Posts carrying ``tag``, newest first (empty for unknown tags)."""
    return tuple(index.posts[position] for position in index.tags.get(tag))


def latest_post(index: ContentIndex) -> Post | None:
    """The newest post, or None when there are no posts."""
    return index.posts[0] if index.posts else None

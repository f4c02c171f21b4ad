"""Content router — serves the content index through Chirp routes.

``SiteViews`` turns the query surface into HTML using the templates carried
by the same snapshot, so each request sees one consistent build.
``ContentRouter`` registers the views on a Chirp app:

    /               latest_post.html   post
    /tag/{tag}      tag.html           tag, posts
    /archive        archive.html       posts
    /rss            RSS 2.0 feed
    /__mew/stats    event log summary (JSON)
    anything else   page.html / post.html, a 301 redirect, or 404
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any

from mew._errors import ViewError
from mew.content.feed import render_feed
from mew.content.index import (
    Page,
    Post,
    Redirect,
    latest_post,
    posts_ordered_by_date,
    posts_with_tag,
    resolve,
)

if TYPE_CHECKING:
    from chirp import App, Request

    from mew.content.container import IndexContainer
    from mew.content.index import ContentIndex
    from mew.observability.collector import SiteCollector


LATEST_POST_TEMPLATE = "latest_post.html"
TAG_TEMPLATE = "tag.html"
ARCHIVE_TEMPLATE = "archive.html"
PAGE_TEMPLATE = "page.html"
POST_TEMPLATE = "post.html"

STATS_ENDPOINT = "/__mew/stats"

_HTML = "text/html; charset=utf-8"
_TEXT = "text/plain; charset=utf-8"
_RSS = "application/rss+xml; charset=utf-8"


class SiteViews:
    """Framework-independent views over an IndexContainer.

    Every view takes one snapshot and renders from it outside the lock.

    Raises:
        ViewError: From any view whose template is missing or fails.

    """

    __slots__ = ("_container",)

    def __init__(self, container: IndexContainer) -> None:
        self._container = container

    @property
    def container(self) -> IndexContainer:
        return self._container

    def latest_post(self) -> str:
        index = self._container.snapshot()
        return _render(index, LATEST_POST_TEMPLATE, post=latest_post(index))

    def posts_by_tag(self, tag: str) -> str:
        index = self._container.snapshot()
        return _render(index, TAG_TEMPLATE, tag=tag, posts=posts_with_tag(index, tag))

    def archive(self) -> str:
        index = self._container.snapshot()
        return _render(index, ARCHIVE_TEMPLATE, posts=posts_ordered_by_date(index))

    def feed(self) -> str:
        return render_feed(self._container.snapshot())

    def content_at(self, path: str) -> str | Redirect | None:
        """Render whatever lives at ``path``.

        Returns the HTML, a Redirect for alternate URLs, or None.

        """
        index = self._container.snapshot()
        match resolve(index, path):
            case Redirect() as redirect:
                return redirect
            case Post() as post:
                return _render(index, POST_TEMPLATE, post=post)
            case Page() as page:
                return _render(index, PAGE_TEMPLATE, page=page)
            case None:
                return None


def _render(index: ContentIndex, template_name: str, **context: Any) -> str:
    env = index.templates
    if env is None:
        msg = f"No templates loaded; cannot render {template_name}"
        raise ViewError(msg)
    try:
        template = env.get_template(template_name)
        return template.render(feed=index.feed, tags=index.tags.tags(), **context)
    except Exception as exc:
        msg = f"Template {template_name} failed: {exc}"
        raise ViewError(msg) from exc


class ContentRouter:
    """Registers SiteViews on a Chirp app.

    Args:
        app: Chirp App to register routes on (must not yet be frozen).
        views: The views to serve.
        collector: Source of the stats endpoint's event log summary.

    """

    def __init__(
        self,
        app: App,
        views: SiteViews,
        collector: SiteCollector | None = None,
    ) -> None:
        self._app = app
        self._views = views
        self._collector = collector
        self._route_count = 0

    @property
    def route_count(self) -> int:
        """Number of routes registered."""
        return self._route_count

    def register(self) -> None:
        """Register every site route.  The catch-all goes last."""
        views = self._views

        async def latest_handler(request: Request) -> Any:
            return _guarded(views.latest_post)

        async def tag_handler(request: Request) -> Any:
            tag = request.path_params["tag"]
            return _guarded(lambda: views.posts_by_tag(tag))

        async def archive_handler(request: Request) -> Any:
            return _guarded(views.archive)

        async def feed_handler(request: Request) -> Any:
            from chirp.http.response import Response

            return Response(body=views.feed(), status=200, content_type=_RSS)

        async def content_handler(request: Request) -> Any:
            return _guarded(lambda: views.content_at(request.path))

        self._add("/", latest_handler, "mew:latest")
        self._add("/tag/{tag}", tag_handler, "mew:tag")
        self._add("/archive", archive_handler, "mew:archive")
        self._add("/rss", feed_handler, "mew:rss")
        if self._collector is not None:
            self.register_stats_endpoint(self._collector)
        self._add("/{path:path}", content_handler, "mew:content")

    def register_stats_endpoint(self, collector: SiteCollector) -> None:
        """Register the ``/__mew/stats`` JSON endpoint."""
        container = self._views.container

        async def stats_handler(request: Request) -> Any:
            from chirp.http.response import Response

            payload = json.dumps(
                {
                    "index": container.query(lambda index: index.summary()),
                    "event_log": collector.log.stats(),
                },
                indent=2,
            )
            return Response(body=payload, status=200, content_type="application/json")

        self._add(STATS_ENDPOINT, stats_handler, "mew:stats")

    def _add(self, path: str, handler: Any, name: str) -> None:
        handler.__name__ = name.replace(":", "_")
        handler.__qualname__ = f"ContentRouter.{handler.__name__}"
        self._app.route(path, methods=["GET"], name=name)(handler)
        self._route_count += 1


def _guarded(view: Any) -> Any:
    """Run a view and map its outcome to a Chirp response."""
    from chirp import Redirect as RedirectResponse
    from chirp.http.response import Response

    try:
        result = view()
    except ViewError as exc:
        print(f"  View error: {exc}", file=sys.stderr)
        return Response(body="internal server error", status=500, content_type=_TEXT)

    match result:
        case None:
            return Response(body="not found", status=404, content_type=_TEXT)
        case Redirect(location=location):
            return RedirectResponse(location, status=301)
        case _:
            return Response(body=result, status=200, content_type=_HTML)

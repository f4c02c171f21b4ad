"""Content layer — configuration records to a served, swappable index.

Handles source rendering, index building, the snapshot container, file
watching, the RSS feed, and Chirp routing.
"""

from mew.content.container import IndexContainer, ReadWriteLock
from mew.content.feed import FeedItem, feed_items, render_feed
from mew.content.index import (
    ContentIndex,
    FeedMetadata,
    Page,
    Post,
    Redirect,
    build_index,
    latest_post,
    load_templates,
    posts_ordered_by_date,
    posts_with_tag,
    resolve,
)
from mew.content.renderer import ContentRenderer
from mew.content.router import ContentRouter, SiteViews
from mew.content.tables import RedirectTable, TagIndex, normalize_url
from mew.content.watcher import ChangeEvent, ContentWatcher

__all__ = [
    "ChangeEvent",
    "ContentIndex",
    "ContentRenderer",
    "ContentRouter",
    "ContentWatcher",
    "FeedItem",
    "FeedMetadata",
    "IndexContainer",
    "Page",
    "Post",
    "ReadWriteLock",
    "Redirect",
    "RedirectTable",
    "SiteViews",
    "TagIndex",
    "build_index",
    "feed_items",
    "latest_post",
    "load_templates",
    "normalize_url",
    "posts_ordered_by_date",
    "posts_with_tag",
    "render_feed",
    "resolve",
]

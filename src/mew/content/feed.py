"""RSS feed — the newest posts as an RSS 2.0 document.

``feed_items`` is the query (first ``count`` posts with absolute links);
``render_feed`` turns the items and the channel settings into XML.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from email.utils import format_datetime
from typing import TYPE_CHECKING
from urllib.parse import urljoin
from xml.etree.ElementTree import Element, SubElement, tostring

if TYPE_CHECKING:
    from mew.content.index import ContentIndex


@dataclass(frozen=True, slots=True)
class FeedItem:
    """One ``<item>`` of the feed."""

    title: str
    link: str
    description: str
    pub_date: datetime


def feed_items(index: ContentIndex) -> tuple[FeedItem, ...]:
    """The ``feed.count`` newest posts, linked absolutely from ``feed.url``."""
    base = index.feed.url
    return tuple(
        FeedItem(
            title=post.title,
            link=urljoin(base, post.url),
            description=post.content_html,
            pub_date=post.date,
        )
        for post in index.posts[: index.feed.count]
    )


def rfc822(value: datetime) -> str:
    """Format a post date for ``<pubDate>``.

    Post dates are naive; they are read as local time of the serving host.

    """
    if value.tzinfo is None:
        value = value.astimezone()
    return format_datetime(value)


def render_feed(index: ContentIndex) -> str:
    """Render the RSS 2.0 document for ``index``."""
    feed = index.feed

    rss = Element("rss")
    rss.set("version", "2.0")
    channel = SubElement(rss, "channel")
    SubElement(channel, "title").text = feed.title
    SubElement(channel, "link").text = feed.url
    SubElement(channel, "description").text = feed.description

    for item in feed_items(index):
        item_el = SubElement(channel, "item")
        SubElement(item_el, "title").text = item.title
        SubElement(item_el, "link").text = item.link
        guid = SubElement(item_el, "guid")
        guid.set("isPermaLink", "true")
        guid.text = item.link
        SubElement(item_el, "description").text = item.description
        SubElement(item_el, "pubDate").text = rfc822(item.pub_date)

    xml = tostring(rss, encoding="unicode", xml_declaration=False)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + xml + "\n"

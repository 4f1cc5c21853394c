"""Fetching and parsing of RSS/Atom feeds."""
from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Any, Optional

import feedparser
import requests

from ..domain.models import Feed, FeedItem
from ..errors import FetchError
from .base_service import BaseService


def _to_datetime(struct_time: Any) -> Optional[datetime]:
    """Convert a feedparser UTC ``time.struct_time`` to an aware datetime."""
    if not struct_time:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(struct_time), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _entry_content(entry: Any) -> str:
    contents = entry.get("content") or []
    if contents:
        return contents[0].get("value", "") or ""
    return ""


def _to_item(entry: Any) -> FeedItem:
    return FeedItem(
        title=entry.get("title", "") or "",
        link=entry.get("link", "") or "",
        guid=entry.get("id", "") or "",
        published=entry.get("published", "") or "",
        published_parsed=_to_datetime(entry.get("published_parsed")),
        updated=entry.get("updated", "") or "",
        description=entry.get("summary", "") or "",
        content=_entry_content(entry),
        author=entry.get("author", "") or "",
        categories=[t.get("term") for t in entry.get("tags") or [] if t.get("term")],
        enclosures=[
            {
                "url": e.get("href", ""),
                "type": e.get("type", ""),
                "length": e.get("length", ""),
            }
            for e in entry.get("enclosures") or []
        ],
    )


def parse_feed(document: bytes) -> Feed:
    """Parse a raw RSS/Atom document into a :class:`Feed`.

    The document must be bytes; feedparser treats a str as a URL or path.

    Raises:
        FetchError: If the document is not recognizable as a feed
    """
    parsed = feedparser.parse(document)

    if not parsed.get("version"):
        reason = parsed.get("bozo_exception") or "unknown feed format"
        raise FetchError(f"failed to parse feed: {reason}")

    meta = parsed.feed
    return Feed(
        title=meta.get("title", "") or "",
        link=meta.get("link", "") or "",
        description=meta.get("subtitle", "") or meta.get("description", "") or "",
        language=meta.get("language", "") or "",
        updated=meta.get("updated", "") or "",
        items=[_to_item(entry) for entry in parsed.entries],
    )


class FeedFetcher(BaseService):
    """Retrieves a feed over HTTP and parses it."""

    def fetch(self, feed_url: str) -> Feed:
        """Download and parse the feed at ``feed_url``.

        Args:
            feed_url: RSS or Atom feed URL

        Returns:
            Parsed feed (possibly with no items)

        Raises:
            FetchError: On network error, non-2xx response or invalid document
        """
        self.logger.info("Fetching feed: %s", feed_url)

        try:
            response = self.http_client.get(feed_url)
        except requests.RequestException as e:
            raise FetchError(f"failed to fetch feed {feed_url}: {e}") from e

        feed = parse_feed(response.content)
        self.logger.info("Successfully fetched feed: %s (%d items)", feed.title, len(feed.items))
        return feed

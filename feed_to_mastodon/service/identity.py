"""Stable entry identifiers for feed items."""
import hashlib

from ..domain.models import FeedItem


def published_text(item: FeedItem) -> str:
    """Return the textual publication date used for hashing.

    Prefers the raw string from the feed, then the ISO form of the parsed
    date, then an empty string.
    """
    if item.published:
        return item.published
    if item.published_parsed is not None:
        return item.published_parsed.isoformat()
    return ""


def generate_entry_id(item: FeedItem) -> str:
    """Generate a stable identifier for a feed item.

    Uses the item's GUID verbatim if the feed provides one. Otherwise the
    identifier is the lowercase hex SHA-256 of title + link + published
    date text. The function is pure, so refetching the same item always
    yields the same id.

    Note that an item without a date and an item whose date text is empty
    hash identically; that ambiguity is accepted.
    """
    if item.guid:
        return item.guid

    combined = item.title + item.link + published_text(item)
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()

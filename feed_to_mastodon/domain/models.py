"""Domain models for feed-to-mastodon."""
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Visibility(str, Enum):
    """Visibility of a Mastodon status.

    - PUBLIC: visible to everyone, shown in public timelines
    - UNLISTED: visible to everyone, hidden from public timelines
    - PRIVATE: followers only
    - DIRECT: mentioned users only
    """
    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"
    DIRECT = "direct"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in {v.value for v in cls}


@dataclass
class FeedItem:
    """One item of an RSS/Atom feed as delivered by the feed source."""
    title: str = ""
    link: str = ""
    guid: str = ""  # Feed-provided unique identifier (RSS guid / Atom id)
    published: str = ""  # Raw published date string from the feed
    published_parsed: Optional[datetime] = None
    updated: str = ""
    description: str = ""
    content: str = ""
    author: str = ""
    categories: list[str] = field(default_factory=list)
    enclosures: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable mapping of all item fields."""
        return {
            "title": self.title,
            "link": self.link,
            "guid": self.guid,
            "published": self.published,
            "published_parsed": self.published_parsed.isoformat() if self.published_parsed else None,
            "updated": self.updated,
            "description": self.description,
            "content": self.content,
            "author": self.author,
            "categories": list(self.categories),
            "enclosures": [dict(e) for e in self.enclosures],
        }

    def to_json(self) -> bytes:
        """Serialize the item into the opaque ``entry_data`` form."""
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")


@dataclass
class Feed:
    """A fetched feed snapshot: feed-level metadata plus ordered items."""
    title: str = ""
    link: str = ""
    description: str = ""
    language: str = ""
    updated: str = ""
    items: list[FeedItem] = field(default_factory=list)

    def metadata(self) -> dict[str, Any]:
        """Return feed-level fields only (no items)."""
        return {
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "language": self.language,
            "updated": self.updated,
        }


@dataclass
class Entry:
    """A feed item tracked in the entry store.

    ``entry_data`` is the serialized feed item, stored verbatim.
    ``posted_at`` is None while the entry is in the backlog.
    """
    id: str
    entry_data: bytes
    fetched_at: datetime
    posted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_posted(self) -> bool:
        return self.posted_at is not None


@dataclass(frozen=True)
class EntryStats:
    """Entry counts taken from a single read."""
    total: int
    posted: int

    @property
    def unposted(self) -> int:
        return self.total - self.posted

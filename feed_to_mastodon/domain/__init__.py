"""Domain models and enums."""
from .models import Entry, EntryStats, Feed, FeedItem, Visibility

__all__ = ["Entry", "EntryStats", "Feed", "FeedItem", "Visibility"]

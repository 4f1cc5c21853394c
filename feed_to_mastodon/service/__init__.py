"""Service layer for application logic."""
from .auth_service import AuthService
from .feed_fetcher import FeedFetcher, parse_feed
from .identity import generate_entry_id
from .ingestion_service import IngestionService
from .mastodon_poster import MastodonPoster
from .posting_service import PostingService, catch_up, mark_entries_posted
from .renderer import DEFAULT_TEMPLATE, TemplateRenderer, truncate

__all__ = [
    "AuthService",
    "DEFAULT_TEMPLATE",
    "FeedFetcher",
    "IngestionService",
    "MastodonPoster",
    "PostingService",
    "TemplateRenderer",
    "catch_up",
    "generate_entry_id",
    "mark_entries_posted",
    "parse_feed",
    "truncate",
]

"""Tests for domain models."""
import json
from datetime import datetime, timezone

from feed_to_mastodon.domain.models import Entry, EntryStats, Feed, FeedItem, Visibility


class TestVisibility:
    """Test Visibility enum."""

    def test_enum_values(self):
        assert [v.value for v in Visibility] == ["public", "unlisted", "private", "direct"]

    def test_is_valid(self):
        assert Visibility.is_valid("unlisted") is True
        assert Visibility.is_valid("followers") is False


class TestFeedItem:
    """Test FeedItem serialization."""

    def test_to_json_keeps_unicode(self):
        item = FeedItem(title="Café ☕", link="https://example.com")

        data = item.to_json()

        assert isinstance(data, bytes)
        assert "Café ☕".encode("utf-8") in data
        assert json.loads(data)["title"] == "Café ☕"

    def test_parsed_date_is_iso_text(self):
        item = FeedItem(published_parsed=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc))

        assert item.to_dict()["published_parsed"] == "2024-01-01T10:00:00+00:00"
        assert FeedItem().to_dict()["published_parsed"] is None


class TestFeed:
    """Test Feed metadata."""

    def test_metadata_excludes_items(self):
        feed = Feed(title="Blog", language="en", items=[FeedItem(title="x")])

        metadata = feed.metadata()

        assert metadata["title"] == "Blog"
        assert metadata["language"] == "en"
        assert "items" not in metadata


class TestEntry:
    """Test Entry and EntryStats."""

    def test_is_posted(self):
        now = datetime.now(timezone.utc)

        assert Entry(id="a", entry_data=b"{}", fetched_at=now).is_posted is False
        assert Entry(id="a", entry_data=b"{}", fetched_at=now, posted_at=now).is_posted is True

    def test_unposted_count(self):
        assert EntryStats(total=5, posted=2).unposted == 3

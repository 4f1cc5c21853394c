"""Reconciliation of a fetched feed snapshot against the entry store."""
from __future__ import annotations

import json
import logging
from logging import Logger
from typing import Optional

from ..domain.models import Feed
from ..errors import FeedToMastodonError, FetchError
from ..storage import FEED_METADATA_KEY, EntryRepository, SettingsRepository
from .identity import generate_entry_id


class IngestionService:
    """Inserts new feed items and removes entries that left the feed.

    Saving and purging are separate operations so callers can skip the
    purge (``fetch --no-purge``) without affecting ingestion.
    """

    def __init__(
        self,
        entry_repo: EntryRepository,
        settings_repo: Optional[SettingsRepository] = None,
        logger: Optional[Logger] = None,
    ):
        """
        Initialize ingestion service.

        Args:
            entry_repo: Entry repository
            settings_repo: Settings repository (needed for feed metadata)
            logger: Logger instance
        """
        self.entry_repo = entry_repo
        self.settings_repo = settings_repo
        self.logger = logger or logging.getLogger(__name__)

    def save_all(self, feed: Optional[Feed]) -> int:
        """
        Save every item of the feed to the entry store.

        Items that fail to serialize or store are logged and skipped.
        Items already in the store count as saved, so the caller should
        compare entry totals to find how many were new.

        Returns:
            Number of items for which the store accepted the save
        """
        if feed is None or not feed.items:
            self.logger.debug("No items to save")
            return 0

        saved = 0
        for item in feed.items:
            entry_id = generate_entry_id(item)

            try:
                entry_data = item.to_json()
            except (TypeError, ValueError) as e:
                self.logger.warning("Failed to serialize item %s: %s", entry_id, e)
                continue

            try:
                inserted = self.entry_repo.save_entry(entry_id, entry_data)
            except FeedToMastodonError as e:
                self.logger.warning("Failed to save entry %s: %s", entry_id, e)
                continue

            self.logger.debug("%s entry: %s", "Saved" if inserted else "Skipped known", entry_id)
            saved += 1

        self.logger.info("Saved %d/%d entries to database", saved, len(feed.items))
        return saved

    def purge_stale(self, feed: Optional[Feed]) -> int:
        """
        Delete stored entries whose ids are not in the feed snapshot.

        An empty feed purges everything; a missing feed is refused.

        Returns:
            Number of entries deleted

        Raises:
            FetchError: If ``feed`` is None
        """
        if feed is None:
            raise FetchError("refusing to purge entries without feed data")

        live_ids = {generate_entry_id(item) for item in feed.items}
        stale_ids = self.entry_repo.get_all_entry_ids() - live_ids

        if not stale_ids:
            self.logger.debug("No stale entries to purge")
            return 0

        purged = self.entry_repo.delete_entries(stale_ids)
        self.logger.info("Purged %d stale entries no longer in feed", purged)
        return purged

    def store_feed_metadata(self, feed: Feed) -> bool:
        """
        Persist feed-level metadata for use in templates.

        Failures are logged; the fetch carries on without metadata.

        Returns:
            True if the metadata was stored
        """
        if self.settings_repo is None:
            return False

        try:
            self.settings_repo.set_setting(
                FEED_METADATA_KEY, json.dumps(feed.metadata(), ensure_ascii=False)
            )
        except FeedToMastodonError as e:
            self.logger.warning("Failed to store feed metadata: %s", e)
            return False

        self.logger.debug("Stored feed metadata for %s", feed.title)
        return True

    def load_feed_metadata(self) -> dict:
        """
        Return the last stored feed metadata, or an empty dict.
        """
        if self.settings_repo is None:
            return {}

        raw = self.settings_repo.get_setting(FEED_METADATA_KEY)
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            self.logger.warning("Failed to decode feed metadata: %s", e)
            return {}
        return data if isinstance(data, dict) else {}

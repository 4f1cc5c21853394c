"""Repository for the key/value settings side-table."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from .base_repository import BaseRepository, utcnow
from .tables import settings


FEED_METADATA_KEY = "feed_metadata"
ACCESS_TOKEN_KEY = "mastodon_access_token"


class SettingsRepository(BaseRepository):
    """
    Repository for small pieces of persisted state.

    Used for the latest feed-level metadata and for the access token
    obtained through the OAuth code exchange.
    """

    def get_setting(self, key: str) -> Optional[str]:
        """
        Get a setting value.

        Args:
            key: Setting key

        Returns:
            Stored value, or None if the key is absent or its value is NULL
        """
        stmt = select(settings.c.value).where(settings.c.key == key)
        row = self._fetchone(stmt)
        return row[0] if row else None

    def set_setting(self, key: str, value: Optional[str]) -> None:
        """
        Insert or replace a setting value.

        Args:
            key: Setting key
            value: New value (None stores NULL)
        """
        now = utcnow()
        stmt = (
            sqlite_insert(settings)
            .values(key=key, value=value, updated_at=now)
            .on_conflict_do_update(
                index_elements=[settings.c.key],
                set_={"value": value, "updated_at": now},
            )
        )
        self._execute_and_commit(stmt)

"""
Storage layer for the SQLite entry store using SQLAlchemy.

Entries and settings live in the same database file and are accessed
through separate repositories sharing one connection.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .database import get_connection, get_database_adapter
from .base_repository import BaseRepository, DBConnection
from .entry_repository import EntryRepository
from .settings_repository import ACCESS_TOKEN_KEY, FEED_METADATA_KEY, SettingsRepository

__all__ = [
    "ACCESS_TOKEN_KEY",
    "BaseRepository",
    "DBConnection",
    "EntryRepository",
    "FEED_METADATA_KEY",
    "SettingsRepository",
    "create_repositories",
    "get_connection",
    "get_database_adapter",
]


def create_repositories(
    database_path: str | Path, logger: Optional[logging.Logger] = None
) -> tuple[EntryRepository, SettingsRepository]:
    """
    Factory function to create all repositories with shared database connection.

    Opens (creating if absent) the database file and applies pending
    migrations first.

    Returns:
        Tuple of (EntryRepository, SettingsRepository)

    Raises:
        StorageError: If the database cannot be opened or migrated

    Example:
        >>> entry_repo, settings_repo = create_repositories("feed-to-mastodon.db")
        >>> # ... use repositories
        >>> entry_repo.close()  # All repos share same connection
    """
    conn = get_connection(database_path, logger=logger)

    entry_repo = EntryRepository(conn)
    settings_repo = SettingsRepository(conn)

    return entry_repo, settings_repo

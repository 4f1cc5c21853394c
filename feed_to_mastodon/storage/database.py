"""Database adapter factory for the SQLite entry store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError
from .adapters import DatabaseAdapter, SQLAlchemyAdapter
from .base_repository import DBConnection


def get_database_adapter(
    database_path: str | Path, logger: Optional[logging.Logger] = None
) -> DatabaseAdapter:
    """Create an adapter for the database file and bring its schema up to date.

    Safe to call repeatedly against the same file: an up-to-date database
    performs no migration work.

    Args:
        database_path: Path to the SQLite file (created if absent)
        logger: Logger instance

    Returns:
        Initialized adapter (an SQLAlchemyAdapter for the SQLite file)

    Raises:
        StorageError: If the file cannot be opened, is corrupt, or a
            migration fails
    """
    try:
        adapter = SQLAlchemyAdapter(database_path, logger=logger)
    except SQLAlchemyError as e:
        raise StorageError(f"failed to open database: {e}") from e

    try:
        adapter.initialize()
    except StorageError:
        adapter.dispose()
        raise
    return adapter


def get_connection(
    database_path: str | Path, logger: Optional[logging.Logger] = None
) -> DBConnection:
    """
    Open the database at ``database_path`` and return a connection.

    Returns:
        DBConnection instance compatible with all repositories

    Example:
        >>> from feed_to_mastodon.storage.database import get_connection
        >>> from feed_to_mastodon.storage.entry_repository import EntryRepository
        >>>
        >>> conn = get_connection("feed-to-mastodon.db")
        >>> entry_repo = EntryRepository(conn)
        >>> # ... use repository
        >>> conn.close()
    """
    return get_database_adapter(database_path, logger=logger).get_connection()

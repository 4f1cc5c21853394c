"""Repository for feed entries and their posting state using SQLAlchemy Core."""

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, func, literal_column, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ..domain.models import Entry, EntryStats
from ..errors import NotFoundError
from .base_repository import BaseRepository, utcnow
from .tables import entries


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


class EntryRepository(BaseRepository):
    """Provides persistence for feed entries.

    An entry is inserted once (``posted_at`` NULL), may transition once to
    posted, and may be deleted when it disappears from the feed. Nothing
    else updates a stored entry.
    """

    # SQLite limits the number of bound parameters per statement.
    DELETE_CHUNK_SIZE = 500

    _COLUMNS = (
        entries.c.id,
        entries.c.entry_data,
        entries.c.posted_at,
        entries.c.fetched_at,
        entries.c.created_at,
    )

    @staticmethod
    def _row_to_entry(row) -> Entry:
        return Entry(
            id=row.id,
            entry_data=bytes(row.entry_data),
            posted_at=_as_utc(row.posted_at),
            fetched_at=_as_utc(row.fetched_at),
            created_at=_as_utc(row.created_at),
        )

    def save_entry(self, entry_id: str, entry_data: bytes) -> bool:
        """Insert a new unposted entry, ignoring ids that already exist.

        A duplicate id is not an error: the stored row, including its
        ``fetched_at`` and ``posted_at``, is left untouched.

        Args:
            entry_id: Stable entry identifier
            entry_data: Serialized feed item

        Returns:
            True if a row was inserted, False if the id was already known
        """
        now = utcnow()
        stmt = (
            sqlite_insert(entries)
            .values(
                id=entry_id,
                entry_data=entry_data,
                fetched_at=now,
                posted_at=None,
                created_at=now,
            )
            .on_conflict_do_nothing(index_elements=[entries.c.id])
        )
        inserted = self._rowcount(self._execute_and_commit(stmt)) > 0
        return inserted

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        """Return a single entry by id, or None if unknown."""
        stmt = select(*self._COLUMNS).where(entries.c.id == entry_id)
        row = self._fetchone(stmt)
        return None if row is None else self._row_to_entry(row)

    def get_unposted_entries(self, limit: int = 0) -> list[Entry]:
        """Get unposted entries, oldest fetched first.

        Args:
            limit: Maximum number of entries; 0 or negative means all

        Returns:
            List of entries (empty if the backlog is empty)
        """
        stmt = (
            select(*self._COLUMNS)
            .where(entries.c.posted_at.is_(None))
            .order_by(entries.c.fetched_at.asc(), literal_column("entries.rowid").asc())
        )
        if limit > 0:
            stmt = stmt.limit(limit)

        return [self._row_to_entry(row) for row in self._fetchall(stmt)]

    def mark_as_posted(self, entry_id: str) -> bool:
        """Set ``posted_at`` to now for an unposted entry.

        Args:
            entry_id: Entry identifier

        Returns:
            True if the entry transitioned to posted, False if it was
            already posted (its original ``posted_at`` is kept)

        Raises:
            NotFoundError: If no entry has this id
        """
        stmt = (
            update(entries)
            .where(entries.c.id == entry_id, entries.c.posted_at.is_(None))
            .values(posted_at=utcnow())
        )
        if self._rowcount(self._execute_and_commit(stmt)) > 0:
            return True

        exists = self._scalar(select(func.count()).select_from(entries).where(entries.c.id == entry_id))
        if not exists:
            raise NotFoundError(entry_id)
        return False

    def get_stats(self) -> EntryStats:
        """Return total and posted counts from a single query."""
        stmt = select(func.count(), func.count(entries.c.posted_at)).select_from(entries)
        row = self._fetchone(stmt)
        return EntryStats(total=int(row[0] or 0), posted=int(row[1] or 0))

    def get_last_fetch_time(self) -> Optional[datetime]:
        """Return the most recent ``fetched_at``, or None if the store is empty."""
        return _as_utc(self._scalar(select(func.max(entries.c.fetched_at))))

    def get_last_post_time(self) -> Optional[datetime]:
        """Return the most recent ``posted_at``, or None if nothing was posted."""
        stmt = select(func.max(entries.c.posted_at)).where(entries.c.posted_at.is_not(None))
        return _as_utc(self._scalar(stmt))

    def get_all_entry_ids(self) -> set[str]:
        """Return every known entry id."""
        return {row[0] for row in self._fetchall(select(entries.c.id))}

    def delete_entries(self, entry_ids: Iterable[str]) -> int:
        """Delete entries by id.

        Ids that are already gone are skipped silently.

        Returns:
            Number of rows actually deleted
        """
        ids = list(entry_ids)
        if not ids:
            return 0

        deleted = 0
        for start in range(0, len(ids), self.DELETE_CHUNK_SIZE):
            chunk = ids[start:start + self.DELETE_CHUNK_SIZE]
            result = self._execute(delete(entries).where(entries.c.id.in_(chunk)))
            deleted += self._rowcount(result)
        self.conn.commit()
        return deleted

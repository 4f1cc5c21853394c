"""Versioned schema migrations for the entry store.

Each migration is an ordered tuple of SQL statements keyed by an integer
version. Applied versions are recorded in ``schema_migrations``; opening an
up-to-date database applies nothing. There is no rollback support, so every
statement should be safe to re-run (``IF NOT EXISTS``).

Each version runs in one transaction with its marker row. This relies on
the engine emitting an explicit ``BEGIN`` (see ``SQLAlchemyAdapter``);
with pysqlite's default transaction handling DDL would autocommit.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from sqlalchemy import func, insert, inspect, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError
from .tables import schema_migrations


MIGRATIONS: dict[int, tuple[str, ...]] = {
    1: (
        """
        CREATE TABLE IF NOT EXISTS entries (
            id TEXT PRIMARY KEY,
            entry_data BLOB NOT NULL,
            posted_at DATETIME,
            fetched_at DATETIME NOT NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_entries_posted_at ON entries(posted_at)",
        "CREATE INDEX IF NOT EXISTS idx_entries_fetched_at ON entries(fetched_at)",
    ),
    2: (
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
        """,
    ),
}


def latest_version(migrations: Mapping[int, Sequence[str]] = MIGRATIONS) -> int:
    """Return the highest version defined in ``migrations`` (0 if none)."""
    return max(migrations, default=0)


def get_migration_version(conn: Connection) -> int:
    """Return the highest applied migration version, or 0 for a new database."""
    stmt = select(func.coalesce(func.max(schema_migrations.c.version), 0))
    return int(conn.execute(stmt).scalar_one())


def _ensure_version_table(engine: Engine, logger: logging.Logger) -> int:
    with engine.begin() as conn:
        schema_migrations.create(conn, checkfirst=True)
        current = get_migration_version(conn)

        # Databases created before version tracking already hold the initial schema.
        if current == 0 and inspect(conn).has_table("entries"):
            logger.info("Existing database detected, marking initial schema as version 1")
            conn.execute(insert(schema_migrations).values(version=1))
            current = 1

    return current


def _apply_migration(engine: Engine, version: int, statements: Sequence[str]) -> None:
    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))
        conn.execute(insert(schema_migrations).values(version=version))


def run_migrations(
    engine: Engine,
    migrations: Optional[Mapping[int, Sequence[str]]] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Apply every pending migration exactly once, in version order.

    Args:
        engine: SQLAlchemy engine bound to the database file
        migrations: Version -> statements mapping (defaults to ``MIGRATIONS``)
        logger: Logger instance

    Returns:
        Number of migrations applied

    Raises:
        StorageError: If the version table cannot be read or a migration fails.
            Migrations applied before the failing one stay recorded.
    """
    migrations = MIGRATIONS if migrations is None else migrations
    logger = logger or logging.getLogger(__name__)

    try:
        current = _ensure_version_table(engine, logger)
    except SQLAlchemyError as e:
        raise StorageError(f"failed to read migration version: {e}") from e

    pending = sorted(v for v in migrations if v > current)
    if not pending:
        return 0

    logger.info("Checking for database migrations (current version: %d)", current)

    for version in pending:
        logger.info("Applying migration %d", version)
        try:
            _apply_migration(engine, version, migrations[version])
        except SQLAlchemyError as e:
            raise StorageError(f"failed to apply migration {version}: {e}") from e

    logger.info("Successfully applied %d migration(s)", len(pending))
    return len(pending)

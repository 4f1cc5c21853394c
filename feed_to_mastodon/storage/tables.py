"""SQLAlchemy Core table definitions for the entry store.

The DDL that creates these tables lives in ``migrations.py``; these
definitions are used to build queries.
"""

from sqlalchemy import (
    MetaData,
    Table,
    Column,
    String,
    Integer,
    Text,
    LargeBinary,
    DateTime,
    func,
)

metadata = MetaData()

entries = Table(
    "entries",
    metadata,
    Column("id", String, primary_key=True),
    Column("entry_data", LargeBinary, nullable=False),
    Column("posted_at", DateTime),
    Column("fetched_at", DateTime, nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

settings = Table(
    "settings",
    metadata,
    Column("key", String, primary_key=True),
    Column("value", Text),
    Column("updated_at", DateTime, server_default=func.current_timestamp()),
)

schema_migrations = Table(
    "schema_migrations",
    metadata,
    Column("version", Integer, primary_key=True, autoincrement=False),
    Column("applied_at", DateTime, server_default=func.current_timestamp()),
)

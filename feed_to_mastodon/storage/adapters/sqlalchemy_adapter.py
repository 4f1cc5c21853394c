"""SQLAlchemy database adapter implementation for the SQLite entry store."""

import logging
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool

from ...errors import StorageError
from ..base_repository import DBConnection
from ..migrations import run_migrations


class SQLAlchemyConnection:
    """Wrapper around SQLAlchemy Session implementing DBConnection protocol.

    Database errors are translated into :class:`StorageError` after the
    session has been rolled back, so callers never see a half-open
    transaction or a driver-specific exception type.
    """

    def __init__(self, session: Session):
        """Initialize SQLAlchemy connection wrapper.

        Args:
            session: SQLAlchemy session object
        """
        self._session = session

    def execute(self, statement: Any, parameters: Any | None = None) -> Any:
        """Execute a statement and return a SQLAlchemy Result.

        Repositories should pass SQLAlchemy Core statements. String SQL is
        accepted and wrapped in `sqlalchemy.text()`.
        """
        try:
            if isinstance(statement, str):
                stmt = text(statement)
            else:
                stmt = statement

            if parameters is None:
                return self._session.execute(stmt)
            return self._session.execute(stmt, parameters)
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StorageError(f"database error: {e}") from e

    def commit(self) -> None:
        """Commit the current transaction."""
        try:
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StorageError(f"failed to commit transaction: {e}") from e

    def close(self) -> None:
        """Close the database session."""
        self._session.close()


class SQLAlchemyAdapter:
    """Database adapter for a local SQLite file using SQLAlchemy.

    Every new DBAPI connection is switched to WAL journaling so that readers
    are not blocked by a concurrent writer (e.g. overlapping cron runs).
    """

    BUSY_TIMEOUT_MS = 5000

    def __init__(self, database_path: str | Path, logger: Optional[logging.Logger] = None):
        """Initialize SQLAlchemy adapter.

        Args:
            database_path: Path to the SQLite database file (created if absent)
            logger: Logger instance
        """
        self.database_path = Path(database_path)
        self.logger = logger or logging.getLogger(__name__)

        # NullPool: each session gets its own DBAPI connection, closed on session close.
        self.engine = create_engine(
            f"sqlite:///{self.database_path}",
            poolclass=NullPool,
            echo=False  # Set to True for SQL debugging
        )

        event.listen(self.engine, "connect", self._on_connect)
        event.listen(self.engine, "begin", self._on_begin)

        # Create session factory
        self.SessionFactory = sessionmaker(bind=self.engine)

    def _on_connect(self, dbapi_connection, _connection_record) -> None:
        """Apply pragmas to every new DBAPI connection.

        pysqlite's own transaction handling is switched off so that DDL
        statements are not autocommitted; transactions are opened by
        ``_on_begin`` instead.
        """

        dbapi_connection.isolation_level = None

        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={self.BUSY_TIMEOUT_MS}")
        finally:
            cursor.close()

    @staticmethod
    def _on_begin(conn) -> None:
        """Emit an explicit BEGIN so schema changes are transactional."""

        conn.exec_driver_sql("BEGIN")

    def initialize(self) -> None:
        """Create the database file and apply pending schema migrations.

        Raises:
            StorageError: If the file cannot be created, opened or migrated
        """
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"failed to create database directory: {e}") from e

        self.logger.info("Opening database: %s", self.database_path)
        applied = run_migrations(self.engine, logger=self.logger)
        self.logger.debug("Database initialized successfully (%d migration(s) applied)", applied)

    def get_connection(self) -> DBConnection:
        """Create and return a new SQLAlchemy session wrapped as DBConnection.

        Returns:
            SQLAlchemyConnection wrapper implementing DBConnection protocol
        """
        return SQLAlchemyConnection(self.SessionFactory())

    def dispose(self) -> None:
        """Dispose of the engine."""
        self.engine.dispose()

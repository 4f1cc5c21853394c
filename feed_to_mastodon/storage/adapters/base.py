"""Base protocol for database adapters."""

from typing import Protocol, runtime_checkable
from ..base_repository import DBConnection


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Protocol defining the interface for database adapters.

    Each adapter is responsible for:
    - Initializing the database schema and applying pending migrations
    - Creating connections that implement the DBConnection protocol
    - Releasing backend resources on dispose
    """

    def initialize(self) -> None:
        """Create the schema and apply pending migrations.

        Must be idempotent: initializing an up-to-date database does nothing.

        Raises:
            StorageError: If initialization fails
        """
        ...

    def get_connection(self) -> DBConnection:
        """Create and return a new database connection.

        The returned connection must implement the DBConnection protocol,
        providing at minimum:
        - execute(statement, parameters) method
        - commit() method
        - close() method

        Returns:
            A connection object implementing DBConnection protocol
        """
        ...

    def dispose(self) -> None:
        """Release engine-level resources."""
        ...

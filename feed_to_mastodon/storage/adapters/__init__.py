"""Database adapters.

The entry store is a single local SQLite file accessed through SQLAlchemy.
"""

from .base import DatabaseAdapter
from .sqlalchemy_adapter import SQLAlchemyAdapter, SQLAlchemyConnection

__all__ = [
    'DatabaseAdapter',
    'SQLAlchemyAdapter',
    'SQLAlchemyConnection',
]

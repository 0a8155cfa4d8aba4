"""Database connection and schema management."""

from kura_search.db.backend import Cursor, Database, Row
from kura_search.db.sqlite_backend import SQLiteBackend

try:
    from kura_search.db.postgres_backend import PostgresBackend
except ImportError:
    PostgresBackend = None  # type: ignore[assignment,misc]

__all__ = ["Cursor", "Database", "PostgresBackend", "Row", "SQLiteBackend"]

"""Database backend protocol: a thin abstraction over async DB connections.

Application code programs against these protocols. Each backend (SQLite,
Postgres) provides a concrete implementation, including the two search
indexes the hybrid searcher reads from: full-text and vector KNN. SQL
dialect differences are handled inside the backend, not in application code.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Row(Protocol):
    """A database row supporting both named and positional access."""

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        ...

    def keys(self) -> Any:
        """Return column names."""
        ...


@runtime_checkable
class Cursor(Protocol):
    """Async cursor returned by Database.execute()."""

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        ...

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        ...

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        ...


@runtime_checkable
class Database(Protocol):
    """Async database backend.

    All application SQL uses ``?`` placeholders and SQLite-flavored syntax.
    Non-SQLite backends translate at execute time (``?`` → ``$N``).
    """

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        ...

    async def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements (DDL, migrations)."""
        ...

    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    async def close(self) -> None:
        """Close the database connection."""
        ...

    async def fts_search(
        self, query: str, *, limit: int = 20, user_id: str | None = None
    ) -> list[tuple[str, float]]:
        """Full-text search. Returns (content_id, rank) pairs, lower rank = better."""
        ...

    async def vector_store(self, content_id: str, embedding: list[float]) -> None:
        """Upsert the embedding for a content item."""
        ...

    async def vector_search(
        self, embedding: list[float], limit: int = 20
    ) -> list[tuple[str, float]]:
        """KNN search. Returns (content_id, cosine distance) pairs, nearest first."""
        ...

    async def vector_delete(self, content_id: str) -> None:
        """Delete the embedding for a content item."""
        ...

    async def apply_schema(self, *, embedding_dim: int = 768) -> None:
        """Create or migrate every table, sizing the vector column to ``embedding_dim``."""
        ...

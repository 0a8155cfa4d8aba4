"""SQLite implementation of the Database protocol.

Thin wrapper around aiosqlite.Connection; no SQL translation needed
since application code already uses SQLite-flavored SQL. Full-text search
runs on FTS5 and vector search on a sqlite-vec ``vec0`` table.
"""

from __future__ import annotations

import logging
import sqlite3
import struct
from typing import TYPE_CHECKING, Any

from kura_search.errors import Component, ServiceUnavailableError

if TYPE_CHECKING:
    import aiosqlite

    from kura_search.db.backend import Cursor, Row

logger = logging.getLogger(__name__)

# Error prefixes SQLite uses when a MATCH expression does not parse
_FTS_SYNTAX_ERRORS = (
    "fts5: syntax error",
    "no such column",
    "unknown special query",
    "unterminated string",
)


def _serialize_f32(vec: list[float]) -> bytes:
    """Serialize a list of floats to a compact binary format for sqlite-vec."""
    return struct.pack(f"{len(vec)}f", *vec)


def _quote_fts_query(query: str) -> str:
    """Turn free text into a safe FTS5 query by quoting every token."""
    tokens = query.split()
    if not tokens:
        return ""
    return " ".join('"' + token.replace('"', '""') + '"' for token in tokens)


def _is_fts_syntax_error(exc: sqlite3.OperationalError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _FTS_SYNTAX_ERRORS)


class SQLiteCursor:
    """Wraps aiosqlite.Cursor to satisfy the Cursor protocol."""

    def __init__(self, cursor: aiosqlite.Cursor) -> None:
        """Initialize with an aiosqlite cursor."""
        self._cursor = cursor

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        rc = self._cursor.rowcount
        return rc if rc is not None else -1

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        return await self._cursor.fetchone()

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        return list(await self._cursor.fetchall())


class SQLiteBackend:
    """SQLite implementation of the Database protocol.

    Passes all calls through to the underlying aiosqlite.Connection.
    The raw connection is exposed as ``_conn`` for SQLite-specific
    operations (extension loading, PRAGMA) that only run during
    connection setup.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        """Initialize with an aiosqlite connection."""
        self._conn = conn
        self.vector_enabled = True

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        cursor = await self._conn.execute(sql, params)
        return SQLiteCursor(cursor)

    async def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements (DDL, migrations)."""
        await self._conn.executescript(sql)

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()

    # -- FTS5 search --

    async def fts_search(
        self,
        query: str,
        *,
        limit: int = 20,
        user_id: str | None = None,
    ) -> list[tuple[str, float]]:
        """Full-text search via FTS5 BM25.

        The query is handed to MATCH as written, so phrase and boolean
        syntax work. If FTS5 cannot parse it, the search is retried once
        with every token quoted.

        Returns (content_id, bm25_score) pairs. Lower scores are better
        (FTS5 returns negative scores where more negative = better match).
        """
        if not query.strip():
            return []
        try:
            return await self._fts_match(query, limit=limit, user_id=user_id)
        except sqlite3.OperationalError as exc:
            if not _is_fts_syntax_error(exc):
                raise
            quoted = _quote_fts_query(query)
            logger.debug("FTS5 rejected %r (%s), retrying as %r", query, exc, quoted)
            return await self._fts_match(quoted, limit=limit, user_id=user_id)

    async def _fts_match(
        self, match: str, *, limit: int, user_id: str | None
    ) -> list[tuple[str, float]]:
        sql = """
            SELECT c.id, bm25(content_fts) as score
            FROM content_fts f
            JOIN content c ON c.rowid = f.rowid
            WHERE content_fts MATCH ?
        """
        params: list[str | int] = [match]

        if user_id is not None:
            sql += " AND c.user_id = ?"
            params.append(user_id)

        sql += " ORDER BY score LIMIT ?"
        params.append(limit)

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]

    # -- Vector operations (sqlite-vec) --

    async def vector_store(self, content_id: str, embedding: list[float]) -> None:
        """Upsert an embedding in the vec0 table."""
        self._require_vectors()
        blob = _serialize_f32(embedding)
        # vec0 doesn't support ON CONFLICT, so delete then insert
        await self._conn.execute("DELETE FROM content_vec WHERE content_id = ?", (content_id,))
        await self._conn.execute(
            "INSERT INTO content_vec (content_id, embedding) VALUES (?, ?)",
            (content_id, blob),
        )

    async def vector_search(
        self, embedding: list[float], limit: int = 20
    ) -> list[tuple[str, float]]:
        """KNN search via sqlite-vec cosine distance. Returns (content_id, distance) pairs."""
        self._require_vectors()
        blob = _serialize_f32(embedding)
        cursor = await self._conn.execute(
            """SELECT content_id, distance
            FROM content_vec
            WHERE embedding MATCH ?
            ORDER BY distance
            LIMIT ?""",
            (blob, limit),
        )
        rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]

    def _require_vectors(self) -> None:
        if not self.vector_enabled:
            raise ServiceUnavailableError(
                Component.VECTOR_STORE, message="vector store disabled: sqlite-vec is not loaded"
            )

    async def vector_delete(self, content_id: str) -> None:
        """Delete embedding for a content item."""
        if not self.vector_enabled:
            return
        await self._conn.execute("DELETE FROM content_vec WHERE content_id = ?", (content_id,))

    # -- Schema --

    async def apply_schema(self, *, embedding_dim: int = 768) -> None:
        """Apply all SQLite DDL: content, FTS5, search history, vec0."""
        from kura_search.db.schema import apply_schema, apply_vec_schema

        await apply_schema(self)

        # vec0 may not be available if sqlite-vec failed to load
        try:
            await apply_vec_schema(self, dim=embedding_dim)
        except Exception:
            self.vector_enabled = False
            logger.warning("sqlite-vec schema not applied, vector search disabled")

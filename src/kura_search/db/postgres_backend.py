"""PostgreSQL implementation of the Database protocol.

Uses asyncpg for async access, pgvector for embeddings, and tsvector/GIN
for full-text search. All application SQL uses ``?`` placeholders; this
backend translates them to ``$N`` at execute time.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import asyncpg

    from kura_search.db.backend import Cursor, Row

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\?")


def _translate_placeholders(sql: str) -> str:
    """Convert ``?`` placeholders to ``$1, $2, ...`` for asyncpg."""
    counter = 0

    def _replace(_match: re.Match[str]) -> str:
        nonlocal counter
        counter += 1
        return f"${counter}"

    return _PLACEHOLDER_RE.sub(_replace, sql)


def _vector_literal(embedding: list[float]) -> str:
    """Format an embedding as a pgvector text literal."""
    return "[" + ",".join(str(v) for v in embedding) + "]"


class PostgresRow:
    """Wraps asyncpg.Record to satisfy the Row protocol."""

    def __init__(self, record: asyncpg.Record) -> None:
        """Initialize with an asyncpg Record."""
        self._record = record

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        return self._record[key]

    def keys(self) -> list[str]:
        """Return column names."""
        return list(self._record.keys())


class PostgresCursor:
    """Wraps a list of asyncpg.Record as a Cursor.

    asyncpg returns results eagerly, with no server-side cursor for
    simple queries. This wraps the result list to match the Cursor protocol.
    """

    def __init__(self, rows: list[asyncpg.Record], status: str | None = None) -> None:
        """Initialize with result rows and optional status string."""
        self._rows = rows
        self._index = 0
        self._rowcount = self._parse_rowcount(status)

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        return self._rowcount

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        if self._index >= len(self._rows):
            return None
        row = PostgresRow(self._rows[self._index])
        self._index += 1
        return row

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        remaining: list[Row] = [PostgresRow(r) for r in self._rows[self._index :]]
        self._index = len(self._rows)
        return remaining

    @staticmethod
    def _parse_rowcount(status: str | None) -> int:
        """Parse affected row count from asyncpg status string.

        Examples: "INSERT 0 1" → 1, "UPDATE 3" → 3, "DELETE 0" → 0.
        """
        if not status:
            return -1
        parts = status.split()
        if len(parts) >= 2:
            try:
                return int(parts[-1])
            except ValueError:
                pass
        return -1


class PostgresBackend:
    """PostgreSQL implementation of the Database protocol.

    Each ``execute()`` call acquires a connection from the pool, translates
    ``?`` → ``$N`` placeholders, and releases the connection after.
    ``commit()`` is a no-op: asyncpg auto-commits each statement.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        """Initialize with an asyncpg connection pool."""
        self._pool = pool

    @classmethod
    async def create(cls, url: str) -> PostgresBackend:
        """Create a PostgresBackend from a connection URL."""
        import asyncpg as _asyncpg

        pool = await _asyncpg.create_pool(url, min_size=2, max_size=10)
        return cls(pool)

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        pg_sql = _translate_placeholders(sql)
        async with self._pool.acquire() as conn:
            stmt = await conn.prepare(pg_sql)
            if stmt.get_attributes():
                rows = await conn.fetch(pg_sql, *params)
                return PostgresCursor(rows)
            status = await conn.execute(pg_sql, *params)
            return PostgresCursor([], status=status)

    async def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements."""
        async with self._pool.acquire() as conn:
            await conn.execute(sql)

    async def commit(self) -> None:
        """No-op: asyncpg auto-commits each statement."""

    async def close(self) -> None:
        """Close the connection pool."""
        await self._pool.close()

    # -- FTS (tsvector + GIN) --

    async def fts_search(
        self,
        query: str,
        *,
        limit: int = 20,
        user_id: str | None = None,
    ) -> list[tuple[str, float]]:
        """Full-text search via tsvector + ts_rank_cd.

        ``websearch_to_tsquery`` accepts quoted phrases, ``OR`` and ``-term``
        as written and never raises on malformed input.

        Returns (content_id, score) pairs. Scores are negated so that
        lower = better, matching the FTS5/bm25 convention.
        """
        if not query.strip():
            return []
        sql = """
            SELECT c.id, -ts_rank_cd(c.search_vector, websearch_to_tsquery('english', $1))
                AS score
            FROM content c
            WHERE c.search_vector @@ websearch_to_tsquery('english', $1)
        """
        params: list[Any] = [query]
        param_idx = 2

        if user_id is not None:
            sql += f" AND c.user_id = ${param_idx}"
            params.append(user_id)
            param_idx += 1

        sql += f" ORDER BY score LIMIT ${param_idx}"
        params.append(limit)

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(sql, *params)
            return [(row["id"], float(row["score"])) for row in rows]

    # -- Vector operations (pgvector) --

    async def vector_store(self, content_id: str, embedding: list[float]) -> None:
        """Upsert an embedding vector."""
        async with self._pool.acquire() as conn:
            await conn.execute(
                """INSERT INTO content_vec (content_id, embedding)
                   VALUES ($1, $2::vector)
                   ON CONFLICT (content_id) DO UPDATE SET embedding = EXCLUDED.embedding""",
                content_id,
                _vector_literal(embedding),
            )

    async def vector_search(
        self, embedding: list[float], limit: int = 20
    ) -> list[tuple[str, float]]:
        """KNN search via pgvector cosine distance. Returns (content_id, distance)."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """SELECT content_id, embedding <=> $1::vector as distance
                   FROM content_vec
                   ORDER BY distance
                   LIMIT $2""",
                _vector_literal(embedding),
                limit,
            )
            return [(row["content_id"], float(row["distance"])) for row in rows]

    async def vector_delete(self, content_id: str) -> None:
        """Delete embedding for a content item."""
        async with self._pool.acquire() as conn:
            await conn.execute("DELETE FROM content_vec WHERE content_id = $1", content_id)

    # -- Schema --

    async def apply_schema(self, *, embedding_dim: int = 768) -> None:
        """Apply all PostgreSQL DDL."""
        from kura_search.db.schema import SCHEMA_VERSION

        async with self._pool.acquire() as conn:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER NOT NULL
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS content (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    file_path TEXT NOT NULL DEFAULT '',
                    content_type TEXT NOT NULL,
                    title TEXT,
                    source TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    annotation TEXT,
                    extracted_text TEXT,
                    embedding_status TEXT NOT NULL DEFAULT 'pending',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    search_vector tsvector
                )
            """)

            for idx_sql in [
                "CREATE INDEX IF NOT EXISTS idx_content_user ON content(user_id)",
                "CREATE INDEX IF NOT EXISTS idx_content_type ON content(content_type)",
                "CREATE INDEX IF NOT EXISTS idx_content_created ON content(created_at DESC)",
                "CREATE INDEX IF NOT EXISTS idx_content_embedding ON content(embedding_status)",
                "CREATE INDEX IF NOT EXISTS idx_content_fts ON content USING gin(search_vector)",
            ]:
                await conn.execute(idx_sql)

            await conn.execute("""
                CREATE OR REPLACE FUNCTION content_search_trigger() RETURNS trigger AS $$
                BEGIN
                    NEW.search_vector :=
                        setweight(to_tsvector('english', COALESCE(NEW.title, '')), 'A') ||
                        setweight(to_tsvector('english', COALESCE(NEW.annotation, '')), 'B') ||
                        setweight(to_tsvector('english',
                            COALESCE(NEW.extracted_text, '')), 'C');
                    RETURN NEW;
                END
                $$ LANGUAGE plpgsql
            """)

            await conn.execute("DROP TRIGGER IF EXISTS tsvector_update ON content")
            await conn.execute("""
                CREATE TRIGGER tsvector_update BEFORE INSERT OR UPDATE
                ON content FOR EACH ROW
                EXECUTE FUNCTION content_search_trigger()
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS search_history (
                    id SERIAL PRIMARY KEY,
                    query TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    method TEXT NOT NULL,
                    results_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_history_user_created"
                " ON search_history(user_id, created_at DESC)"
            )

            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS content_vec (
                    content_id TEXT PRIMARY KEY,
                    embedding vector({embedding_dim})
                )
            """)

            row = await conn.fetchrow("SELECT version FROM schema_version")
            if row is None:
                await conn.execute(
                    "INSERT INTO schema_version (version) VALUES ($1)", SCHEMA_VERSION
                )

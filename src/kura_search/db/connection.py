"""Open the content database: SQLite with sqlite-vec, or PostgreSQL with pgvector."""

import logging
from pathlib import Path

import aiosqlite
import sqlite_vec

from kura_search.config import get_database_url, get_db_path, get_embedding_dim
from kura_search.db.backend import Database
from kura_search.db.sqlite_backend import SQLiteBackend

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


async def create_connection(
    db_path: Path | str | None = None, *, embedding_dim: int | None = None
) -> Database:
    """Open the configured backend and bring its schema up to date.

    ``embedding_dim`` sizes the vector column and defaults to
    KURA_EMBEDDING_DIM, which must match the embedding model. A
    ``postgresql://`` KURA_DATABASE_URL selects Postgres unless ``db_path``
    is ``":memory:"``.
    """
    dim = embedding_dim if embedding_dim is not None else get_embedding_dim()
    url = get_database_url()
    if db_path != MEMORY and url and url.startswith("postgresql"):
        from kura_search.db.postgres_backend import PostgresBackend

        db: Database = await PostgresBackend.create(url)
    else:
        db = await _open_sqlite(db_path or get_db_path())
    await db.apply_schema(embedding_dim=dim)
    return db


async def _open_sqlite(db_path: Path | str) -> SQLiteBackend:
    path = str(db_path)
    if path != MEMORY:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(path)
    conn.row_factory = aiosqlite.Row
    # WAL lets history writes proceed alongside search reads
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA foreign_keys=ON")

    def _load_vec() -> None:
        conn._conn.enable_load_extension(True)
        sqlite_vec.load(conn._conn)
        conn._conn.enable_load_extension(False)

    try:
        await conn._execute(_load_vec)  # type: ignore[no-untyped-call]
    except Exception:
        logger.warning("sqlite-vec extension not available, vector search disabled")
    else:
        logger.debug("sqlite-vec extension loaded")
    return SQLiteBackend(conn)

"""DDL and migrations for the content database."""

from kura_search.db.backend import Database

SCHEMA_VERSION = 2

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

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
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_content_user ON content(user_id);
CREATE INDEX IF NOT EXISTS idx_content_type ON content(content_type);
CREATE INDEX IF NOT EXISTS idx_content_created ON content(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_content_embedding ON content(embedding_status);

CREATE VIRTUAL TABLE IF NOT EXISTS content_fts USING fts5(
    title,
    annotation,
    extracted_text,
    content='content',
    content_rowid='rowid',
    tokenize='porter unicode61'
);

-- Triggers to keep FTS in sync with the content table
CREATE TRIGGER IF NOT EXISTS content_fts_ai AFTER INSERT ON content BEGIN
    INSERT INTO content_fts(rowid, title, annotation, extracted_text)
    VALUES (new.rowid, new.title, new.annotation, new.extracted_text);
END;

CREATE TRIGGER IF NOT EXISTS content_fts_ad AFTER DELETE ON content BEGIN
    INSERT INTO content_fts(content_fts, rowid, title, annotation, extracted_text)
    VALUES ('delete', old.rowid, old.title, old.annotation, old.extracted_text);
END;

CREATE TRIGGER IF NOT EXISTS content_fts_au
AFTER UPDATE OF title, annotation, extracted_text ON content BEGIN
    INSERT INTO content_fts(content_fts, rowid, title, annotation, extracted_text)
    VALUES ('delete', old.rowid, old.title, old.annotation, old.extracted_text);
    INSERT INTO content_fts(rowid, title, annotation, extracted_text)
    VALUES (new.rowid, new.title, new.annotation, new.extracted_text);
END;

CREATE TABLE IF NOT EXISTS search_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    query TEXT NOT NULL,
    user_id TEXT NOT NULL,
    method TEXT NOT NULL,
    results_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
"""

# Created after migrations; v1 history tables lack user_id
HISTORY_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_history_user_created "
    "ON search_history(user_id, created_at DESC)"
)


def _vec_table_sql(dim: int) -> str:
    return f"""
CREATE VIRTUAL TABLE IF NOT EXISTS content_vec USING vec0(
    content_id TEXT PRIMARY KEY,
    embedding FLOAT[{dim}] distance_metric=cosine
);
"""


async def apply_schema(db: Database) -> None:
    """Apply the content, FTS and search history schema."""
    await db.executescript(SCHEMA_SQL)

    cursor = await db.execute("SELECT version FROM schema_version")
    row = await cursor.fetchone()
    if row is None:
        await db.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    elif row[0] < SCHEMA_VERSION:
        await _migrate_history_columns(db)
        await db.execute("UPDATE schema_version SET version = ?", (SCHEMA_VERSION,))

    await db.execute(HISTORY_INDEX_SQL)
    await db.commit()


async def apply_vec_schema(db: Database, dim: int = 768) -> None:
    """Create the vec0 virtual table. Requires sqlite-vec extension loaded."""
    await db.executescript(_vec_table_sql(dim))
    await db.commit()


async def _migrate_history_columns(db: Database) -> None:
    """Add user_id and method to search_history for databases from schema v1."""
    cursor = await db.execute("PRAGMA table_info(search_history)")
    columns = {row[1] for row in await cursor.fetchall()}
    if "user_id" not in columns:
        await db.execute("ALTER TABLE search_history ADD COLUMN user_id TEXT NOT NULL DEFAULT ''")
    if "method" not in columns:
        await db.execute("ALTER TABLE search_history ADD COLUMN method TEXT NOT NULL DEFAULT 'fts'")

"""Query helpers for content metadata and search history."""

import json
from datetime import UTC, datetime

from kura_search.db.backend import Database, Row
from kura_search.models.content import ContentItem, ContentType, EmbeddingStatus
from kura_search.models.search import SearchHistoryRecord, SearchMethod


def row_to_content(row: Row) -> ContentItem:
    """Convert a database row to a ContentItem."""
    return ContentItem(
        id=row["id"],
        user_id=row["user_id"],
        content_type=ContentType(row["content_type"]),
        file_path=row["file_path"] or "",
        title=row["title"],
        source=row["source"],
        tags=_parse_tags(row["tags"]),
        annotation=row["annotation"],
        extracted_text=row["extracted_text"],
        embedding_status=EmbeddingStatus(row["embedding_status"]),
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
    )


async def insert_content(db: Database, item: ContentItem) -> None:
    """Insert a new content item. FTS is auto-synced via triggers."""
    await db.execute(
        """INSERT INTO content
        (id, user_id, file_path, content_type, title, source, tags, annotation,
         extracted_text, embedding_status, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            item.id,
            item.user_id,
            item.file_path,
            item.content_type.value,
            item.title,
            item.source,
            json.dumps(item.tags),
            item.annotation,
            item.extracted_text,
            item.embedding_status.value,
            _to_iso(item.created_at),
            _to_iso(item.updated_at),
        ),
    )
    await db.commit()


async def get_content(db: Database, content_id: str) -> ContentItem | None:
    """Get a single content item by ID."""
    cursor = await db.execute("SELECT * FROM content WHERE id = ?", (content_id,))
    row = await cursor.fetchone()
    return row_to_content(row) if row else None


async def delete_content(db: Database, content_id: str) -> bool:
    """Hard-delete a content item. Returns False if it did not exist."""
    cursor = await db.execute("DELETE FROM content WHERE id = ?", (content_id,))
    await db.commit()
    return cursor.rowcount > 0


async def set_embedding_status(db: Database, content_id: str, status: EmbeddingStatus) -> None:
    """Record whether the item has been embedded."""
    await db.execute(
        "UPDATE content SET embedding_status = ? WHERE id = ?",
        (status.value, content_id),
    )
    await db.commit()


async def get_content_ids_by_status(
    db: Database, status: EmbeddingStatus, limit: int = 100
) -> list[str]:
    """Get IDs of items with the given embedding status, oldest first."""
    cursor = await db.execute(
        "SELECT id FROM content WHERE embedding_status = ? ORDER BY created_at LIMIT ?",
        (status.value, limit),
    )
    rows = await cursor.fetchall()
    return [row["id"] for row in rows]


async def insert_search_history(db: Database, record: SearchHistoryRecord) -> None:
    """Append a search history record."""
    await db.execute(
        """INSERT INTO search_history (query, user_id, method, results_count, created_at)
        VALUES (?, ?, ?, ?, ?)""",
        (
            record.query,
            record.user_id,
            record.method_used.value,
            record.result_count,
            record.created_at.isoformat(),
        ),
    )
    await db.commit()


async def get_search_history(
    db: Database, user_id: str, limit: int = 10
) -> list[SearchHistoryRecord]:
    """Most recent searches issued by a user, newest first."""
    cursor = await db.execute(
        """SELECT query, user_id, method, results_count, created_at
        FROM search_history
        WHERE user_id = ?
        ORDER BY created_at DESC, id DESC
        LIMIT ?""",
        (user_id, limit),
    )
    rows = await cursor.fetchall()
    return [
        SearchHistoryRecord(
            query=row["query"],
            user_id=row["user_id"],
            method_used=SearchMethod(row["method"]),
            result_count=row["results_count"],
            created_at=_parse_dt(row["created_at"]),
        )
        for row in rows
    ]


def _parse_tags(raw: str | None) -> list[str]:
    """Parse tags from storage format. Tags are stored as a JSON array."""
    if not raw or not raw.strip():
        return []
    tags = json.loads(raw)
    return [str(t) for t in tags] if isinstance(tags, list) else []


def _parse_dt(raw: str | None) -> datetime | None:
    if not raw:
        return None
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def _to_iso(value: datetime | None) -> str:
    return value.isoformat() if value else _now_iso()


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()

"""Content metadata store: CRUD, embedding indexing and search history."""

import logging
import uuid
from datetime import UTC, datetime

from kura_search.db.backend import Database
from kura_search.db.queries import (
    delete_content,
    get_content,
    get_content_ids_by_status,
    get_search_history,
    insert_content,
    insert_search_history,
    set_embedding_status,
)
from kura_search.errors import ServiceUnavailableError
from kura_search.models.content import ContentItem, ContentType, EmbeddingStatus
from kura_search.models.search import SearchHistoryRecord
from kura_search.search.adapters import Embedder

logger = logging.getLogger(__name__)


class ContentStore:
    """Owns captured-content metadata and keeps the vector index in step with it."""

    def __init__(self, db: Database, embedder: Embedder | None = None):
        """Initialize with a database connection and an optional embedder."""
        self.db = db
        self.embedder = embedder

    async def create_content(
        self,
        user_id: str,
        content_type: ContentType,
        *,
        title: str | None = None,
        annotation: str | None = None,
        extracted_text: str | None = None,
        tags: list[str] | None = None,
        source: str | None = None,
        file_path: str = "",
        created_at: datetime | None = None,
        embed: bool = True,
    ) -> ContentItem:
        """Create a content item; embeds it immediately when an embedder is configured."""
        now = datetime.now(UTC)
        item = ContentItem(
            id=str(uuid.uuid4()),
            user_id=user_id,
            content_type=content_type,
            file_path=file_path,
            title=title,
            source=source,
            tags=tags or [],
            annotation=annotation,
            extracted_text=extracted_text,
            created_at=created_at or now,
            updated_at=created_at or now,
        )
        await insert_content(self.db, item)
        logger.info("Created %s content %s", content_type.value, item.id)

        if embed and self.embedder is not None:
            item = await self.embed_content(item)
        return item

    async def get_content(self, content_id: str) -> ContentItem | None:
        """Get a single content item by ID."""
        return await get_content(self.db, content_id)

    async def delete_content(self, content_id: str) -> bool:
        """Delete an item and its embedding. Returns False if it did not exist."""
        await self.db.vector_delete(content_id)
        deleted = await delete_content(self.db, content_id)
        if deleted:
            logger.info("Deleted content %s", content_id)
        else:
            logger.warning("Content not found for deletion: %s", content_id)
        return deleted

    async def embed_content(self, item: ContentItem) -> ContentItem:
        """Embed an item and store its vector, recording the embedding status."""
        if self.embedder is None:
            raise RuntimeError("ContentStore has no embedder configured")

        text = item.embedding_text
        embedding = await self.embedder.embed(text) if text else None
        if embedding is None:
            status = EmbeddingStatus.FAILED
            logger.warning("Could not embed content %s", item.id)
        else:
            try:
                await self.db.vector_store(item.id, embedding)
            except ServiceUnavailableError as exc:
                logger.warning("Could not index embedding for %s: %s", item.id, exc)
                status = EmbeddingStatus.FAILED
            else:
                status = EmbeddingStatus.COMPLETED

        await set_embedding_status(self.db, item.id, status)
        return item.model_copy(update={"embedding_status": status})

    async def get_pending_embeddings(self, limit: int = 100) -> list[str]:
        """IDs of items that still need an embedding."""
        return await get_content_ids_by_status(self.db, EmbeddingStatus.PENDING, limit)

    async def embed_pending(self, limit: int = 100) -> int:
        """Embed items created without a vector. Returns how many were indexed."""
        if self.embedder is None:
            return 0
        indexed = 0
        for content_id in await self.get_pending_embeddings(limit):
            item = await self.get_content(content_id)
            if item is None:
                continue
            item = await self.embed_content(item)
            if item.embedding_status == EmbeddingStatus.COMPLETED:
                indexed += 1
        if indexed:
            logger.info("Backfilled embeddings for %d items", indexed)
        return indexed

    async def insert_search_history(self, record: SearchHistoryRecord) -> None:
        """Append a search history record."""
        await insert_search_history(self.db, record)

    async def get_search_history(self, user_id: str, limit: int = 10) -> list[SearchHistoryRecord]:
        """Most recent searches by a user, newest first."""
        return await get_search_history(self.db, user_id, limit)

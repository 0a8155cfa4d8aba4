"""Shared test fixtures."""

import asyncio
import math
import zlib
from datetime import UTC, datetime

import pytest_asyncio

from kura_search.db.connection import create_connection
from kura_search.models.content import ContentItem, ContentType
from kura_search.models.search import SearchHistoryRecord
from kura_search.store.content_store import ContentStore

USER = "user-1"


@pytest_asyncio.fixture
async def db():
    """In-memory database with full schema and sqlite-vec."""
    conn = await create_connection(":memory:")
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store(db):
    """Content store backed by in-memory DB, no embedder."""
    return ContentStore(db)


@pytest_asyncio.fixture
async def fake_embedder():
    """Bag-of-words fake embedding client."""
    return FakeEmbedder()


@pytest_asyncio.fixture
async def embedding_store(db, fake_embedder):
    """Content store that embeds on create."""
    return ContentStore(db, fake_embedder)


class FakeEmbedder:
    """Deterministic bag-of-words embedder for testing.

    Each lowercase token is hashed into one dimension, so texts sharing
    words end up close in cosine distance and identical texts get
    identical vectors.
    """

    def __init__(self, dim: int = 768):
        self.dim = dim
        self.available = True
        self.calls = 0

    async def embed(self, text: str) -> list[float] | None:
        self.calls += 1
        if not self.available:
            return None
        vec = [0.0] * self.dim
        for token in text.lower().split():
            token = token.strip(".,:;!?\"'()")
            if token:
                vec[zlib.crc32(token.encode()) % self.dim] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        if norm == 0:
            return None
        return [v / norm for v in vec]

    async def is_available(self) -> bool:
        return self.available

    async def close(self) -> None:
        pass


class StubEmbedder:
    """Returns a fixed vector, or fails / stalls on demand."""

    def __init__(self, *, fail: bool = False, returns_none: bool = False, delay: float = 0.0):
        self.fail = fail
        self.returns_none = returns_none
        self.delay = delay
        self.calls = 0

    async def embed(self, text: str) -> list[float] | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("embedding service down")
        if self.returns_none:
            return None
        return [1.0, 0.0, 0.0]


class StubVectorIndex:
    """Returns canned (content_id, distance) pairs."""

    def __init__(self, hits=None, *, fail: bool = False, delay: float = 0.0):
        self.hits = hits or []
        self.fail = fail
        self.delay = delay
        self.calls = 0
        self.started = asyncio.Event()

    async def vector_search(self, embedding, limit=20):
        self.calls += 1
        self.started.set()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("vector store down")
        return self.hits[:limit]


class StubTextIndex:
    """Returns canned (content_id, rank) pairs."""

    def __init__(self, hits=None, *, fail: bool = False, delay: float = 0.0):
        self.hits = hits or []
        self.fail = fail
        self.delay = delay
        self.calls = 0
        self.last_query: str | None = None
        self.last_user_id: str | None = None
        self.started = asyncio.Event()

    async def fts_search(self, query, *, limit=20, user_id=None):
        self.calls += 1
        self.last_query = query
        self.last_user_id = user_id
        self.started.set()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("text index down")
        return self.hits[:limit]


class StubMetadata:
    """In-memory MetadataSource."""

    def __init__(self, items=None):
        self.items = {item.id: item for item in items or []}

    async def get_content(self, content_id):
        return self.items.get(content_id)


class StubHistorySink:
    """Collects history records; can fail or stall."""

    def __init__(self, *, fail: bool = False, delay: float = 0.0):
        self.records: list[SearchHistoryRecord] = []
        self.fail = fail
        self.delay = delay

    async def insert_search_history(self, record: SearchHistoryRecord) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("history table locked")
        self.records.append(record)


def make_item(
    item_id: str,
    *,
    user_id: str = USER,
    content_type: ContentType = ContentType.TEXT,
    title: str | None = None,
    tags: list[str] | None = None,
    annotation: str | None = None,
    extracted_text: str | None = "some text",
    created_at: datetime | None = None,
) -> ContentItem:
    created = created_at or datetime(2025, 6, 1, tzinfo=UTC)
    return ContentItem(
        id=item_id,
        user_id=user_id,
        content_type=content_type,
        title=title or f"Item {item_id}",
        tags=tags or [],
        annotation=annotation,
        extracted_text=extracted_text,
        created_at=created,
        updated_at=created,
    )

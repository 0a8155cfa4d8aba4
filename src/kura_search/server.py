"""FastMCP server with lifespan management and tool registration."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from kura_search.config import (
    SearchSettings,
    get_breaker_recovery,
    get_breaker_threshold,
    get_db_path,
    get_log_level,
    get_user_id,
)
from kura_search.db.connection import create_connection
from kura_search.search.breaker import CircuitBreaker
from kura_search.search.embeddings import EmbeddingClient
from kura_search.search.history import SearchHistoryLogger
from kura_search.search.hybrid import HybridSearcher
from kura_search.store.content_store import ContentStore
from kura_search.tools.search import register_search_tools


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Manage database connection, embedding client and searcher lifecycle."""
    # Configure logging to stderr (stdout is MCP stdio transport)
    logging.basicConfig(
        level=getattr(logging, get_log_level()),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    db_path = get_db_path()
    logger.info("Opening database at %s", db_path)
    db = await create_connection(db_path)

    embedder = EmbeddingClient()
    store = ContentStore(db, embedder)
    settings = SearchSettings.from_env()
    history = SearchHistoryLogger(store, timeout=settings.history_timeout)
    searcher = HybridSearcher(
        embedder,
        db,
        db,
        store,
        history=history,
        settings=settings,
        breaker=CircuitBreaker(
            "vector",
            failure_threshold=get_breaker_threshold(),
            recovery_timeout=get_breaker_recovery(),
        ),
    )

    if await embedder.is_available():
        logger.info("Ollama available, vector search enabled")
        await store.embed_pending()
    else:
        logger.warning("Ollama unavailable, searches will fall back to full-text")

    try:
        yield {
            "db": db,
            "store": store,
            "embedder": embedder,
            "searcher": searcher,
            "user_id": get_user_id(),
        }
    finally:
        await history.drain()
        await embedder.close()
        await db.close()
        logger.info("Database connection closed")


_INSTRUCTIONS = """\
Search the user's captured content: text notes, images, PDFs and audio \
transcripts, each with optional title, annotation and tags.

- search: ranked results with a relevance score. Semantic search is tried \
first; keyword (full-text) search takes over when embeddings are offline or \
find nothing. mode=combined merges both. Keyword syntax is passed through: \
"exact phrase", AND, OR, NOT.
- Narrow with content_types, tags (all must match) and date_from/date_to.
- search_history: the user's recent queries and which method answered them.
"""


def create_server() -> FastMCP:
    """Create and configure the MCP server with all tools."""
    mcp = FastMCP(
        "kura-search",
        instructions=_INSTRUCTIONS,
        lifespan=lifespan,
    )
    register_search_tools(mcp)
    return mcp

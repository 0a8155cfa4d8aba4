"""search and search_history MCP tools."""

import logging
from datetime import datetime
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from kura_search.errors import SearchValidationError, ServiceUnavailableError
from kura_search.models.content import ContentType
from kura_search.models.search import SearchMode
from kura_search.search.hybrid import HybridSearcher
from kura_search.tools.formatters import format_history, format_outcome

logger = logging.getLogger(__name__)


async def run_search(
    searcher: HybridSearcher,
    user_id: str,
    query: str,
    *,
    limit: int = 10,
    mode: SearchMode = SearchMode.AUTO,
    content_types: list[ContentType] | None = None,
    tags: list[str] | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> str:
    """Run a search and render it, turning expected errors into readable messages."""
    filters = {
        "content_types": set(content_types) if content_types else None,
        "tags": set(tags) if tags else None,
        "date_from": date_from,
        "date_to": date_to,
    }
    try:
        outcome = await searcher.search_text(
            query, user_id, limit=limit, mode=mode, filters=filters
        )
    except SearchValidationError as exc:
        return f"Invalid search: {exc}"
    except ServiceUnavailableError as exc:
        logger.error("Search failed: %s", exc)
        return str(exc)
    return format_outcome(outcome)


def register_search_tools(mcp: FastMCP) -> None:
    """Register the search and search_history tools with the MCP server."""

    @mcp.tool()
    async def search(
        query: Annotated[
            str,
            Field(
                description="Search query. Natural language, or keyword syntax: "
                "\"phrase\", AND, OR, NOT"
            ),
        ],
        limit: Annotated[
            int, Field(description="Maximum results to return (1-50)", ge=1, le=50)
        ] = 10,
        mode: Annotated[
            SearchMode,
            Field(description="auto (semantic, keyword fallback), vector_only, or combined"),
        ] = SearchMode.AUTO,
        content_types: Annotated[
            list[ContentType] | None,
            Field(description="Only these types (text, image, pdf, audio)"),
        ] = None,
        tags: Annotated[
            list[str] | None, Field(description="Filter by tags (all must match)")
        ] = None,
        date_from: Annotated[
            datetime | None, Field(description="Created at or after (ISO 8601)")
        ] = None,
        date_to: Annotated[
            datetime | None, Field(description="Created at or before (ISO 8601)")
        ] = None,
        ctx: Context | None = None,
    ) -> str:
        """Search captured notes, images and PDFs.

        Tries semantic (embedding) search first and falls back to keyword
        search when embeddings are unavailable or find nothing. Use
        mode=combined to merge both. Results carry a 0-100% relevance score.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")
        lifespan = ctx.lifespan_context
        return await run_search(
            lifespan["searcher"],
            lifespan["user_id"],
            query,
            limit=limit,
            mode=mode,
            content_types=content_types,
            tags=tags,
            date_from=date_from,
            date_to=date_to,
        )

    @mcp.tool()
    async def search_history(
        limit: Annotated[int, Field(description="Number of recent searches", ge=1, le=100)] = 10,
        ctx: Context | None = None,
    ) -> str:
        """List your most recent searches with the method that answered each."""
        if ctx is None:
            raise RuntimeError("Context not injected")
        lifespan = ctx.lifespan_context
        records = await lifespan["store"].get_search_history(lifespan["user_id"], limit)
        return format_history(records)

"""Tests for the search MCP tool."""

from datetime import UTC, datetime

import pytest

from kura_search.models.content import ContentType
from kura_search.models.search import SearchMode
from kura_search.search.hybrid import HybridSearcher
from kura_search.tools.search import run_search
from tests.conftest import (
    USER,
    StubEmbedder,
    StubMetadata,
    StubTextIndex,
    StubVectorIndex,
    make_item,
)


def _searcher(vector_hits=None, fts_hits=None, items=None, *, embedder=None, fts_fail=False):
    return HybridSearcher(
        embedder or StubEmbedder(),
        StubVectorIndex(vector_hits),
        StubTextIndex(fts_hits, fail=fts_fail),
        StubMetadata(items or []),
    )


@pytest.mark.asyncio
async def test_run_search_formats_results():
    searcher = _searcher([("a", 0.2)], items=[make_item("a", title="Docker networking")])
    output = await run_search(searcher, USER, "docker")
    assert output.startswith("1 result(s)\nMethod: semantic match")
    assert "[a] text | Docker networking (90%)" in output


@pytest.mark.asyncio
async def test_run_search_applies_filters():
    items = [
        make_item("pdf", content_type=ContentType.PDF, tags=["tax"]),
        make_item("txt", tags=["tax"]),
    ]
    searcher = _searcher([("pdf", 0.2), ("txt", 0.3)], items=items)
    output = await run_search(
        searcher,
        USER,
        "tax",
        content_types=[ContentType.PDF],
        tags=["tax"],
        date_from=datetime(2025, 1, 1, tzinfo=UTC),
    )
    assert "[pdf]" in output
    assert "[txt]" not in output


@pytest.mark.asyncio
async def test_run_search_invalid_dates():
    output = await run_search(
        _searcher(),
        USER,
        "q",
        date_from=datetime(2025, 2, 1, tzinfo=UTC),
        date_to=datetime(2025, 1, 1, tzinfo=UTC),
    )
    assert output.startswith("Invalid search:")


@pytest.mark.asyncio
async def test_run_search_invalid_limit():
    output = await run_search(_searcher(), USER, "q", limit=500)
    assert output.startswith("Invalid search:")
    assert "limit" in output


@pytest.mark.asyncio
async def test_run_search_unavailable():
    searcher = _searcher(embedder=StubEmbedder(fail=True), fts_fail=True)
    output = await run_search(searcher, USER, "q")
    assert output.startswith("Search unavailable:")


@pytest.mark.asyncio
async def test_run_search_vector_only_unavailable():
    searcher = _searcher(embedder=StubEmbedder(fail=True), fts_hits=[("a", -1.0)])
    output = await run_search(searcher, USER, "q", mode=SearchMode.VECTOR_ONLY)
    assert output.startswith("Search unavailable:")
    assert "embedding" in output


@pytest.mark.asyncio
async def test_run_search_no_results():
    output = await run_search(_searcher([], []), USER, "nothing here")
    assert output == "No results found."

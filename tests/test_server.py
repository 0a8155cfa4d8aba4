"""Tests for server wiring and configuration."""

from unittest.mock import patch

import pytest
from fastmcp import FastMCP

from kura_search.config import (
    SearchSettings,
    get_breaker_threshold,
    get_db_path,
    get_fts_score_floor,
    get_user_id,
)
from kura_search.db.connection import create_connection
from kura_search.models.content import ContentType, EmbeddingStatus
from kura_search.models.search import SearchMethod
from kura_search.server import create_server, lifespan
from kura_search.store.content_store import ContentStore
from kura_search.tools.search import run_search
from tests.conftest import FakeEmbedder


def test_create_server():
    mcp = create_server()
    assert isinstance(mcp, FastMCP)
    assert mcp.name == "kura-search"


def test_config_defaults():
    with patch.dict("os.environ", {}, clear=True):
        assert get_user_id() == "default"
        assert get_fts_score_floor() == 0.1
        assert get_breaker_threshold() == 3
        assert get_db_path().name == "kura.db"


def test_search_settings_from_env():
    env = {
        "KURA_VECTOR_TIMEOUT": "1.5",
        "KURA_FTS_TIMEOUT": "2.5",
        "KURA_FTS_SCORE_FLOOR": "0.2",
        "KURA_OVERFETCH_FACTOR": "4",
    }
    with patch.dict("os.environ", env, clear=True):
        settings = SearchSettings.from_env()
    assert settings.vector_timeout == 1.5
    assert settings.fts_timeout == 2.5
    assert settings.fts_score_floor == 0.2
    assert settings.fetch_limit(10) == 40


def test_search_settings_rejects_bad_floor():
    with patch.dict("os.environ", {"KURA_FTS_SCORE_FLOOR": "1.5"}):
        with pytest.raises(ValueError):
            SearchSettings.from_env()


@pytest.mark.parametrize(
    ("limit", "expected"),
    [(1, 3), (10, 30), (50, 150)],
)
def test_fetch_limit(limit, expected):
    assert SearchSettings().fetch_limit(limit) == expected


def test_fetch_limit_capped():
    assert SearchSettings(overfetch_factor=10, max_fetch=100).fetch_limit(50) == 100


@pytest.mark.asyncio
async def test_lifespan_wires_searcher(tmp_path):
    env = {
        "KURA_DB_PATH": str(tmp_path / "kura.db"),
        "KURA_OLLAMA_URL": "http://127.0.0.1:9",
        "KURA_OLLAMA_TIMEOUT": "0.5",
        "KURA_USER_ID": "tester",
    }
    with patch.dict("os.environ", env, clear=True):
        async with lifespan(create_server()) as ctx:
            assert ctx["user_id"] == "tester"
            await ctx["store"].create_content(
                "tester", ContentType.TEXT, title="Router", extracted_text="reset the router"
            )
            # Ollama is unreachable, so the answer comes from full-text search
            output = await run_search(ctx["searcher"], ctx["user_id"], "router")
            assert "Method: keyword match" in output
            assert "Router" in output


@pytest.mark.asyncio
async def test_lifespan_backfills_pending_embeddings(tmp_path):
    path = tmp_path / "kura.db"
    with patch.dict("os.environ", {}, clear=True):
        db = await create_connection(path)
    item = await ContentStore(db).create_content(
        "tester", ContentType.TEXT, title="Kayak", extracted_text="sea kayak routes"
    )
    await db.close()

    env = {"KURA_DB_PATH": str(path), "KURA_USER_ID": "tester"}
    with patch.dict("os.environ", env, clear=True):
        with patch("kura_search.server.EmbeddingClient", FakeEmbedder):
            async with lifespan(create_server()) as ctx:
                store = ctx["store"]
                assert await store.get_pending_embeddings() == []
                loaded = await store.get_content(item.id)
                assert loaded.embedding_status == EmbeddingStatus.COMPLETED
                outcome = await ctx["searcher"].search_text("kayak routes", "tester")
                assert outcome.method_used == SearchMethod.VECTOR
                assert [r.id for r in outcome.results] == [item.id]

"""Full-text keyword search over the text index."""

import asyncio
import logging

from kura_search.errors import Component
from kura_search.models.search import Candidate, CandidateSource
from kura_search.search.adapters import AdapterResult, TextIndex
from kura_search.search.normalize import DEFAULT_FTS_FLOOR, normalize_fts_ranks

logger = logging.getLogger(__name__)


async def fts_search(
    index: TextIndex,
    query: str,
    limit: int = 20,
    *,
    user_id: str | None = None,
    timeout: float = 5.0,
    floor: float = DEFAULT_FTS_FLOOR,
) -> AdapterResult:
    """Run a full-text query and normalize its ranks over this result set.

    The query string goes to the index untouched, so the engine's own
    phrase and boolean syntax apply. Any failure or timeout yields an
    unavailable result.
    """
    try:
        async with asyncio.timeout(timeout):
            hits = await index.fts_search(query, limit=limit, user_id=user_id)
    except TimeoutError:
        logger.warning("FTS search timed out after %.1fs for query: %s", timeout, query)
        return AdapterResult.unavailable(CandidateSource.FTS, Component.TEXT_INDEX, "timeout")
    except Exception as exc:
        logger.warning("FTS search failed for query: %s", query, exc_info=True)
        return AdapterResult.unavailable(CandidateSource.FTS, Component.TEXT_INDEX, str(exc))

    hits = hits[:limit]
    scores = normalize_fts_ranks([rank for _, rank in hits], floor=floor)
    candidates = [
        Candidate(
            content_id=content_id,
            raw_score=rank,
            normalized_score=score,
            source_method=CandidateSource.FTS,
            native_rank=position,
        )
        for position, ((content_id, rank), score) in enumerate(zip(hits, scores, strict=True))
    ]
    logger.debug("FTS search returned %d candidates", len(candidates))
    return AdapterResult.ok(CandidateSource.FTS, candidates)

"""KNN vector search via cosine distance."""

import asyncio
import logging

from kura_search.errors import Component
from kura_search.models.search import Candidate, CandidateSource
from kura_search.search.adapters import AdapterResult, Embedder, VectorIndex
from kura_search.search.normalize import normalize_vector_distance

logger = logging.getLogger(__name__)


async def vector_search(
    embedder: Embedder,
    index: VectorIndex,
    query: str,
    limit: int = 20,
    *,
    timeout: float = 5.0,
) -> AdapterResult:
    """Embed the query and fetch its nearest neighbours.

    Embedding and KNN lookup share one ``timeout`` budget. A failure or
    timeout in either step yields an unavailable result naming the step
    that failed; an empty neighbour list is a successful search.
    """
    deadline = asyncio.get_running_loop().time() + timeout

    try:
        async with asyncio.timeout_at(deadline):
            embedding = await embedder.embed(query)
    except TimeoutError:
        logger.warning("Query embedding timed out after %.1fs", timeout)
        return AdapterResult.unavailable(CandidateSource.VECTOR, Component.EMBEDDING, "timeout")
    except Exception as exc:
        logger.warning("Query embedding failed", exc_info=True)
        return AdapterResult.unavailable(CandidateSource.VECTOR, Component.EMBEDDING, str(exc))

    if embedding is None:
        return AdapterResult.unavailable(
            CandidateSource.VECTOR, Component.EMBEDDING, "no embedding returned"
        )

    try:
        async with asyncio.timeout_at(deadline):
            neighbours = await index.vector_search(embedding, limit=limit)
    except TimeoutError:
        logger.warning("Vector search timed out after %.1fs", timeout)
        return AdapterResult.unavailable(CandidateSource.VECTOR, Component.VECTOR_STORE, "timeout")
    except Exception as exc:
        logger.warning("Vector search failed", exc_info=True)
        return AdapterResult.unavailable(CandidateSource.VECTOR, Component.VECTOR_STORE, str(exc))

    candidates = [
        Candidate(
            content_id=content_id,
            raw_score=distance,
            normalized_score=normalize_vector_distance(distance),
            source_method=CandidateSource.VECTOR,
            native_rank=position,
        )
        for position, (content_id, distance) in enumerate(neighbours[:limit])
    ]
    logger.debug("Vector search returned %d candidates", len(candidates))
    return AdapterResult.ok(CandidateSource.VECTOR, candidates)

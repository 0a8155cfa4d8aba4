"""Merge vector and FTS candidate lists into one duplicate-free ranking."""

import logging

from kura_search.models.search import Candidate, CandidateSource

logger = logging.getLogger(__name__)

_SOURCE_PRIORITY = {CandidateSource.VECTOR: 0, CandidateSource.FTS: 1}


def combine_candidates(
    vector: list[Candidate] | None = None,
    fts: list[Candidate] | None = None,
) -> list[Candidate]:
    """Deduplicate by content_id and sort by normalized score, best first.

    When an item was found by both methods, the candidate with the higher
    normalized score survives (the vector one on a tie). Equal scores are
    ordered vector before FTS, then by each adapter's own order.
    """
    best: dict[str, Candidate] = {}
    for candidate in [*(vector or []), *(fts or [])]:
        current = best.get(candidate.content_id)
        if current is None or _sort_key(candidate) < _sort_key(current):
            best[candidate.content_id] = candidate

    merged = sorted(best.values(), key=_sort_key)
    total = len(vector or []) + len(fts or [])
    if total != len(merged):
        logger.debug("Merged %d candidates into %d unique items", total, len(merged))
    return merged


def _sort_key(candidate: Candidate) -> tuple[float, int, int]:
    return (
        -candidate.normalized_score,
        _SOURCE_PRIORITY[candidate.source_method],
        candidate.native_rank,
    )

"""Tests for candidate merging and deduplication."""

from kura_search.models.search import Candidate, CandidateSource
from kura_search.search.combine import combine_candidates


def _vec(content_id: str, score: float, rank: int = 0) -> Candidate:
    return Candidate(
        content_id=content_id,
        raw_score=2 * (1 - score),
        normalized_score=score,
        source_method=CandidateSource.VECTOR,
        native_rank=rank,
    )


def _fts(content_id: str, score: float, rank: int = 0) -> Candidate:
    return Candidate(
        content_id=content_id,
        raw_score=-score,
        normalized_score=score,
        source_method=CandidateSource.FTS,
        native_rank=rank,
    )


def test_empty_inputs():
    assert combine_candidates() == []
    assert combine_candidates(vector=[], fts=[]) == []


def test_single_list_kept_in_order():
    merged = combine_candidates(vector=[_vec("a", 0.9), _vec("b", 0.7, 1), _vec("c", 0.5, 2)])
    assert [c.content_id for c in merged] == ["a", "b", "c"]


def test_duplicate_keeps_higher_score():
    merged = combine_candidates(vector=[_vec("x", 0.8)], fts=[_fts("x", 0.6)])
    assert len(merged) == 1
    assert merged[0].normalized_score == 0.8
    assert merged[0].source_method == CandidateSource.VECTOR


def test_duplicate_fts_wins_when_higher():
    merged = combine_candidates(vector=[_vec("x", 0.4)], fts=[_fts("x", 1.0)])
    assert len(merged) == 1
    assert merged[0].source_method == CandidateSource.FTS
    assert merged[0].normalized_score == 1.0


def test_duplicate_tie_prefers_vector():
    merged = combine_candidates(vector=[_vec("x", 0.7)], fts=[_fts("x", 0.7)])
    assert merged[0].source_method == CandidateSource.VECTOR


def test_interleaves_by_score():
    merged = combine_candidates(
        vector=[_vec("a", 0.9), _vec("b", 0.5, 1)],
        fts=[_fts("c", 1.0), _fts("d", 0.1, 1)],
    )
    assert [c.content_id for c in merged] == ["c", "a", "b", "d"]


def test_equal_scores_vector_before_fts_then_native_order():
    merged = combine_candidates(
        vector=[_vec("v1", 0.5, 0), _vec("v2", 0.5, 1)],
        fts=[_fts("f1", 0.5, 0), _fts("f2", 0.5, 1)],
    )
    assert [c.content_id for c in merged] == ["v1", "v2", "f1", "f2"]


def test_no_duplicates_and_sorted():
    vector = [_vec(f"id{i}", 1 - i * 0.1, i) for i in range(6)]
    fts = [_fts(f"id{i}", 1 - (i - 3) * 0.15, i - 3) for i in range(3, 9)]
    merged = combine_candidates(vector=vector, fts=fts)
    ids = [c.content_id for c in merged]
    assert len(ids) == len(set(ids)) == 9
    scores = [c.normalized_score for c in merged]
    assert scores == sorted(scores, reverse=True)

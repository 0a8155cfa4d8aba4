"""Map raw vector distances and FTS ranks onto a common [0, 1] relevance scale.

Vector and full-text scores are never compared raw. Any merge of the two
candidate lists only looks at the values produced here.
"""

DEFAULT_FTS_FLOOR = 0.1


def normalize_vector_distance(distance: float) -> float:
    """Convert cosine distance (0 = identical, 2 = opposite) to a similarity in [0, 1]."""
    similarity = 1.0 - distance / 2.0
    return min(1.0, max(0.0, similarity))


def normalize_fts_ranks(ranks: list[float], floor: float = DEFAULT_FTS_FLOOR) -> list[float]:
    """Min-max scale one result set of FTS ranks, where lower rank = better match.

    The best rank maps to 1.0 and the worst to ``floor``, so a weak keyword
    hit never looks like "no match". A single hit, or a set where every rank
    is equal, maps to 1.0.
    """
    if not 0.0 < floor < 1.0:
        raise ValueError(f"floor must be between 0 and 1 (exclusive), got {floor}")
    if not ranks:
        return []

    best = min(ranks)
    worst = max(ranks)
    if best == worst:
        return [1.0] * len(ranks)

    span = worst - best
    return [floor + (1.0 - floor) * (worst - rank) / span for rank in ranks]

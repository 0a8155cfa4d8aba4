"""Post-search structured filters over candidate metadata."""

import asyncio
import logging
from dataclasses import dataclass

from kura_search.models.content import ContentItem
from kura_search.models.search import Candidate, SearchFilters
from kura_search.search.adapters import MetadataSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredItem:
    """A surviving candidate paired with its content metadata."""

    candidate: Candidate
    item: ContentItem


class MetadataCache:
    """Memoizes ``get_content`` lookups for the lifetime of one search call."""

    def __init__(self, source: MetadataSource):
        self.source = source
        self._items: dict[str, ContentItem | None] = {}

    async def get_content(self, content_id: str) -> ContentItem | None:
        if content_id not in self._items:
            self._items[content_id] = await self.source.get_content(content_id)
        return self._items[content_id]


def matches_filters(item: ContentItem, filters: SearchFilters) -> bool:
    """True if the item satisfies every populated filter field."""
    if filters.content_types and item.content_type not in filters.content_types:
        return False
    if filters.tags and not filters.tags.issubset(item.tags):
        return False
    if filters.date_from or filters.date_to:
        if item.created_at is None:
            return False
        if filters.date_from and item.created_at < filters.date_from:
            return False
        if filters.date_to and item.created_at > filters.date_to:
            return False
    return True


async def resolve_owned(
    metadata: MetadataSource,
    candidates: list[Candidate],
    *,
    user_id: str,
) -> list[ScoredItem]:
    """Attach metadata to each candidate, keeping only the user's existing content.

    Candidates whose content no longer exists are dropped silently (the
    indexes can lag behind deletions), as are items owned by another user.
    Relative order is preserved.
    """
    items = await asyncio.gather(*(metadata.get_content(c.content_id) for c in candidates))

    owned: list[ScoredItem] = []
    missing = 0
    for candidate, item in zip(candidates, items, strict=True):
        if item is None:
            missing += 1
        elif item.user_id == user_id:
            owned.append(ScoredItem(candidate=candidate, item=item))

    if missing:
        logger.debug("Dropped %d candidates with no backing content", missing)
    return owned


async def apply_filters(
    metadata: MetadataSource,
    candidates: list[Candidate],
    filters: SearchFilters,
    *,
    user_id: str,
) -> list[ScoredItem]:
    """Resolve candidates to the user's content and keep those that pass the filters."""
    owned = await resolve_owned(metadata, candidates, user_id=user_id)
    kept = [scored for scored in owned if matches_filters(scored.item, filters)]
    if not filters.is_empty():
        logger.debug("Filters kept %d of %d candidates", len(kept), len(candidates))
    return kept

"""Hybrid search orchestration: vector first, full-text fallback, optional fusion.

Each call walks a small state machine::

    START -> VECTOR_ATTEMPT -> [FTS_ATTEMPT] -> COMBINE -> FILTER -> LOG -> DONE

Adapters never raise for backend trouble; they return an ``AdapterResult``
whose ``available`` flag drives the transitions. Candidates are resolved
against content metadata as soon as an adapter returns, so an index that
only found deleted or foreign content counts as having found nothing.
Only two errors escape:
``SearchValidationError`` from START (before any backend is touched) and
``ServiceUnavailableError`` when no applicable method could run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from kura_search.config import SearchSettings
from kura_search.db.backend import Database
from kura_search.errors import Component, SearchValidationError, ServiceUnavailableError
from kura_search.models.search import (
    MAX_LIMIT,
    MIN_LIMIT,
    Candidate,
    CandidateSource,
    SearchHistoryRecord,
    SearchMethod,
    SearchMode,
    SearchOutcome,
    SearchQuery,
    SearchResult,
    SearchResultMetadata,
)
from kura_search.search.adapters import (
    AdapterResult,
    Embedder,
    MetadataSource,
    TextIndex,
    VectorIndex,
)
from kura_search.search.breaker import CircuitBreaker
from kura_search.search.combine import combine_candidates
from kura_search.search.filters import MetadataCache, ScoredItem, apply_filters, resolve_owned
from kura_search.search.fts import fts_search
from kura_search.search.history import SearchHistoryLogger
from kura_search.search.vector import vector_search

logger = logging.getLogger(__name__)


class SearchState(StrEnum):
    """Stages of a single search call."""

    START = "start"
    VECTOR_ATTEMPT = "vector_attempt"
    FTS_ATTEMPT = "fts_attempt"
    COMBINE = "combine"
    FILTER = "filter"
    LOG = "log"
    DONE = "done"


@dataclass
class SearchRun:
    """Request-scoped working state for one search call."""

    query: SearchQuery
    fetch_limit: int
    metadata: MetadataSource | None = None
    state: SearchState = SearchState.START
    trace: list[SearchState] = field(default_factory=list)
    vector: AdapterResult | None = None
    fts: AdapterResult | None = None
    method: SearchMethod | None = None
    merged: list[Candidate] = field(default_factory=list)
    kept: list[ScoredItem] = field(default_factory=list)
    outcome: SearchOutcome | None = None


class HybridSearcher:
    """Turns a SearchQuery into a ranked, filtered, deduplicated SearchOutcome."""

    def __init__(
        self,
        embedder: Embedder | None,
        vector_index: VectorIndex,
        text_index: TextIndex,
        metadata: MetadataSource,
        *,
        history: SearchHistoryLogger | None = None,
        settings: SearchSettings | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        """Wire the collaborators; ``embedder=None`` means vector search is never attempted."""
        self.embedder = embedder
        self.vector_index = vector_index
        self.text_index = text_index
        self.metadata = metadata
        self.history = history
        self.settings = settings or SearchSettings()
        self.breaker = breaker

    @classmethod
    def from_database(
        cls,
        db: Database,
        embedder: Embedder | None,
        *,
        settings: SearchSettings | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> HybridSearcher:
        """Build a searcher whose indexes, metadata and history all live in ``db``."""
        from kura_search.store.content_store import ContentStore

        settings = settings or SearchSettings()
        store = ContentStore(db)
        return cls(
            embedder,
            db,
            db,
            store,
            history=SearchHistoryLogger(store, timeout=settings.history_timeout),
            settings=settings,
            breaker=breaker,
        )

    async def search_text(self, text: str, user_id: str, **kwargs: Any) -> SearchOutcome:
        """Build a SearchQuery from keyword arguments and run it."""
        query = SearchQuery.create(text=text, user_id=user_id, **kwargs)
        return await self.search(query)

    async def search(self, query: SearchQuery) -> SearchOutcome:
        """Execute one search call."""
        run = await self.execute(query)
        if run.outcome is None:
            raise RuntimeError("search finished without an outcome")
        return run.outcome

    async def execute(self, query: SearchQuery) -> SearchRun:
        """Execute one search call and return its full run record (outcome plus trace)."""
        run = SearchRun(query=query, fetch_limit=0)
        handlers = {
            SearchState.START: self._start,
            SearchState.VECTOR_ATTEMPT: self._vector_attempt,
            SearchState.FTS_ATTEMPT: self._fts_attempt,
            SearchState.COMBINE: self._combine,
            SearchState.FILTER: self._filter,
            SearchState.LOG: self._log,
        }
        while run.state != SearchState.DONE:
            run.trace.append(run.state)
            next_state = await handlers[run.state](run)
            logger.debug("search %s -> %s", run.state.value, next_state.value)
            run.state = next_state
        run.trace.append(SearchState.DONE)
        return run

    # -- States --

    async def _start(self, run: SearchRun) -> SearchState:
        _validate(run.query)
        run.fetch_limit = self.settings.fetch_limit(run.query.limit)
        run.metadata = MetadataCache(self.metadata)
        return SearchState.VECTOR_ATTEMPT

    async def _vector_attempt(self, run: SearchRun) -> SearchState:
        query = run.query

        if query.mode == SearchMode.COMBINED:
            # Independent I/O: issue both before waiting on either
            run.vector, run.fts = await asyncio.gather(
                self._run_vector(query.text, run.fetch_limit),
                self._run_fts(query, run.fetch_limit),
            )
            run.vector = await self._resolve(run, run.vector)
            run.fts = await self._resolve(run, run.fts)
            return SearchState.COMBINE

        run.vector = await self._resolve(run, await self._run_vector(query.text, run.fetch_limit))

        if query.mode == SearchMode.VECTOR_ONLY:
            if not run.vector.available:
                raise ServiceUnavailableError(run.vector.failed_component or Component.EMBEDDING)
            return SearchState.COMBINE

        if run.vector.contributed:
            return SearchState.COMBINE
        if run.vector.available:
            logger.info("Vector search found nothing, falling back to FTS: %s", query.text)
        else:
            logger.warning(
                "Vector search unavailable (%s), falling back to FTS",
                run.vector.failed_component,
            )
        return SearchState.FTS_ATTEMPT

    async def _fts_attempt(self, run: SearchRun) -> SearchState:
        run.fts = await self._resolve(run, await self._run_fts(run.query, run.fetch_limit))
        return SearchState.COMBINE

    async def _combine(self, run: SearchRun) -> SearchState:
        run.method = _resolve_method(run)
        vector = run.vector.candidates if run.vector and run.vector.available else None
        fts = run.fts.candidates if run.fts and run.fts.available else None
        if run.method == SearchMethod.VECTOR:
            fts = None
        elif run.method == SearchMethod.FTS:
            vector = None
        run.merged = combine_candidates(vector=vector, fts=fts)
        return SearchState.FILTER

    async def _filter(self, run: SearchRun) -> SearchState:
        run.kept = await apply_filters(
            run.metadata or self.metadata,
            run.merged,
            run.query.filters,
            user_id=run.query.user_id,
        )
        if run.method is None:
            raise RuntimeError("filter reached before a search method was chosen")
        run.outcome = SearchOutcome(
            results=[_to_result(scored) for scored in run.kept[: run.query.limit]],
            total_results=len(run.kept),
            method_used=run.method,
        )
        return SearchState.LOG

    async def _log(self, run: SearchRun) -> SearchState:
        outcome = run.outcome
        if outcome is not None:
            logger.info(
                "Search completed: method=%s results=%d total=%d",
                outcome.method_used.value,
                len(outcome.results),
                outcome.total_results,
            )
            if self.history is not None:
                self.history.log(
                    SearchHistoryRecord(
                        query=run.query.text,
                        user_id=run.query.user_id,
                        method_used=outcome.method_used,
                        result_count=len(outcome.results),
                    )
                )
        return SearchState.DONE

    # -- Adapter calls --

    async def _run_vector(self, text: str, limit: int) -> AdapterResult:
        if self.embedder is None:
            return AdapterResult.unavailable(
                CandidateSource.VECTOR, Component.EMBEDDING, "no embedder configured"
            )
        if self.breaker is not None and not self.breaker.allow():
            logger.debug("Vector search skipped: circuit %s is open", self.breaker.name)
            return AdapterResult.unavailable(
                CandidateSource.VECTOR, Component.EMBEDDING, "circuit open"
            )

        try:
            result = await vector_search(
                self.embedder,
                self.vector_index,
                text,
                limit,
                timeout=self.settings.vector_timeout,
            )
        except BaseException:
            if self.breaker is not None:
                self.breaker.release()
            raise

        if self.breaker is not None:
            if result.available:
                self.breaker.record_success()
            else:
                self.breaker.record_failure()
        return result

    async def _resolve(self, run: SearchRun, result: AdapterResult) -> AdapterResult:
        """Drop candidates with no backing content or owned by someone else.

        Runs before any fallback decision: a vector index that only returned
        stale or foreign neighbours has contributed nothing.
        """
        if not result.candidates:
            return result
        owned = await resolve_owned(
            run.metadata or self.metadata, result.candidates, user_id=run.query.user_id
        )
        if len(owned) == len(result.candidates):
            return result
        logger.debug(
            "%s search: %d of %d candidates resolved to the user's content",
            result.method.value,
            len(owned),
            len(result.candidates),
        )
        return replace(result, candidates=[scored.candidate for scored in owned])

    async def _run_fts(self, query: SearchQuery, limit: int) -> AdapterResult:
        return await fts_search(
            self.text_index,
            query.text,
            limit,
            user_id=query.user_id,
            timeout=self.settings.fts_timeout,
            floor=self.settings.fts_score_floor,
        )


def _validate(query: SearchQuery) -> None:
    """Re-check a query even if it bypassed model validation (e.g. model_construct)."""
    if not isinstance(query.text, str) or not query.text.strip():
        raise SearchValidationError("query text must not be empty", field="text")
    if not query.user_id:
        raise SearchValidationError("user_id must not be empty", field="user_id")
    if not MIN_LIMIT <= query.limit <= MAX_LIMIT:
        raise SearchValidationError(
            f"limit must be between {MIN_LIMIT} and {MAX_LIMIT}, got {query.limit}",
            field="limit",
        )
    filters = query.filters
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        raise SearchValidationError(
            "date_from must not be after date_to", field="filters.date_from"
        )


def _resolve_method(run: SearchRun) -> SearchMethod:
    """Decide which method answered, or raise if none could."""
    vector, fts = run.vector, run.fts
    mode = run.query.mode

    if mode == SearchMode.VECTOR_ONLY:
        return SearchMethod.VECTOR

    if mode == SearchMode.AUTO:
        if vector is not None and vector.contributed:
            return SearchMethod.VECTOR
        if fts is not None and fts.available:
            return SearchMethod.FTS
        if vector is not None and vector.available:
            # Vector answered "no matches"; the fallback failing doesn't change that
            logger.warning("FTS fallback unavailable, returning empty vector result")
            return SearchMethod.VECTOR
        raise ServiceUnavailableError(Component.TEXT_INDEX, causes=_failed(vector))

    vector_ok = vector is not None and vector.contributed
    fts_ok = fts is not None and fts.contributed
    if vector_ok and fts_ok:
        return SearchMethod.COMBINED
    if vector_ok:
        return SearchMethod.VECTOR
    if fts_ok:
        return SearchMethod.FTS
    if fts is not None and fts.available:
        return SearchMethod.FTS
    if vector is not None and vector.available:
        return SearchMethod.VECTOR
    raise ServiceUnavailableError(Component.TEXT_INDEX, causes=_failed(vector))


def _failed(result: AdapterResult | None) -> list[Component]:
    if result is None or result.failed_component is None:
        return []
    return [result.failed_component]


def _to_result(scored: ScoredItem) -> SearchResult:
    item = scored.item
    return SearchResult(
        id=item.id,
        title=item.title,
        excerpt=item.excerpt,
        content_type=item.content_type,
        relevance_score=scored.candidate.normalized_score,
        metadata=SearchResultMetadata(
            tags=item.tags,
            created_at=item.created_at,
            updated_at=item.updated_at,
            source=item.source,
            annotation=item.annotation,
        ),
    )

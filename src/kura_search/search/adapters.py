"""Collaborator protocols and the typed result every search adapter returns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from kura_search.errors import Component
from kura_search.models.content import ContentItem
from kura_search.models.search import Candidate, CandidateSource, SearchHistoryRecord


@runtime_checkable
class Embedder(Protocol):
    """Turns text into an embedding vector."""

    async def embed(self, text: str) -> list[float] | None:
        """Return the embedding, or None if the service could not produce one."""
        ...


@runtime_checkable
class VectorIndex(Protocol):
    """Nearest-neighbour lookup over stored content embeddings."""

    async def vector_search(
        self, embedding: list[float], limit: int = 20
    ) -> list[tuple[str, float]]:
        """Return (content_id, cosine distance) pairs, nearest first."""
        ...


@runtime_checkable
class TextIndex(Protocol):
    """Keyword/phrase lookup over captured text."""

    async def fts_search(
        self, query: str, *, limit: int = 20, user_id: str | None = None
    ) -> list[tuple[str, float]]:
        """Return (content_id, rank) pairs, best first, lower rank = better."""
        ...


@runtime_checkable
class MetadataSource(Protocol):
    """Authoritative content metadata."""

    async def get_content(self, content_id: str) -> ContentItem | None:
        """Return the item, or None if it no longer exists."""
        ...


@runtime_checkable
class HistorySink(Protocol):
    """Destination for search history records."""

    async def insert_search_history(self, record: SearchHistoryRecord) -> None:
        """Persist one record."""
        ...


@dataclass
class AdapterResult:
    """Outcome of one search adapter call.

    ``available`` distinguishes "searched and found nothing" from "could not
    search at all"; when it is False, ``failed_component`` says which
    collaborator was at fault.
    """

    method: CandidateSource
    candidates: list[Candidate] = field(default_factory=list)
    available: bool = True
    failed_component: Component | None = None
    error: str | None = None

    @classmethod
    def ok(cls, method: CandidateSource, candidates: list[Candidate]) -> AdapterResult:
        """Successful search (possibly with zero candidates)."""
        return cls(method=method, candidates=candidates)

    @classmethod
    def unavailable(
        cls, method: CandidateSource, component: Component, error: str | None = None
    ) -> AdapterResult:
        """The adapter could not run."""
        return cls(method=method, available=False, failed_component=component, error=error)

    @property
    def contributed(self) -> bool:
        """True when the adapter ran and produced at least one candidate."""
        return self.available and bool(self.candidates)

"""Search-related models."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from kura_search.errors import SearchValidationError
from kura_search.models.content import ContentType

MIN_LIMIT = 1
MAX_LIMIT = 50


class SearchMode(StrEnum):
    """How the orchestrator chooses between search methods."""

    AUTO = "auto"
    VECTOR_ONLY = "vector_only"
    COMBINED = "combined"


class SearchMethod(StrEnum):
    """The method that actually answered a search."""

    VECTOR = "vector"
    FTS = "fts"
    COMBINED = "combined"


class CandidateSource(StrEnum):
    """The adapter a candidate came from."""

    VECTOR = "vector"
    FTS = "fts"


class SearchFilters(BaseModel):
    """Structured post-search filters. Populated fields are ANDed together."""

    content_types: set[ContentType] | None = None
    tags: set[str] | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    @field_validator("date_from", "date_to")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Stored timestamps are UTC; naive bounds are read the same way
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_date_order(self) -> "SearchFilters":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    def is_empty(self) -> bool:
        """True when no filter field narrows the results."""
        return not (self.content_types or self.tags or self.date_from or self.date_to)


class SearchQuery(BaseModel):
    """Parameters for a single search call, scoped to one user."""

    text: str
    user_id: str
    limit: int = Field(default=10, ge=MIN_LIMIT, le=MAX_LIMIT)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    mode: SearchMode = SearchMode.AUTO

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("query text must not be empty")
        return value

    @field_validator("user_id")
    @classmethod
    def _require_user(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("user_id must not be empty")
        return value

    @classmethod
    def create(cls, **kwargs: Any) -> "SearchQuery":
        """Build a query, raising SearchValidationError instead of pydantic's error."""
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise _to_search_error(exc) from exc


class Candidate(BaseModel):
    """A single-method hit before deduplication and filtering."""

    content_id: str
    raw_score: float
    normalized_score: float = Field(ge=0.0, le=1.0)
    source_method: CandidateSource
    native_rank: int = 0


class SearchResultMetadata(BaseModel):
    """Content metadata returned alongside a search result."""

    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    source: str | None = None
    annotation: str | None = None


class SearchResult(BaseModel):
    """A single user-facing search hit."""

    id: str
    title: str | None = None
    excerpt: str
    content_type: ContentType
    relevance_score: float = Field(ge=0.0, le=1.0)
    metadata: SearchResultMetadata = Field(default_factory=SearchResultMetadata)


class SearchOutcome(BaseModel):
    """Ranked results plus the method that produced them."""

    results: list[SearchResult] = Field(default_factory=list)
    total_results: int = 0
    method_used: SearchMethod


class SearchHistoryRecord(BaseModel):
    """Append-only record of one completed search call."""

    model_config = ConfigDict(frozen=True)

    query: str
    user_id: str
    method_used: SearchMethod
    result_count: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def _to_search_error(exc: ValidationError) -> SearchValidationError:
    errors = exc.errors()
    if not errors:
        return SearchValidationError(str(exc))
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", "invalid search request")
    if field:
        message = f"{field}: {message}"
    return SearchValidationError(message, field=field)

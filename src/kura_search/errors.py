"""Exceptions raised by the search core.

Only two error kinds ever reach a caller of ``HybridSearcher.search``: bad
input (``SearchValidationError``) and total unavailability of every
applicable search method (``ServiceUnavailableError``). Partial failures are
absorbed by the fallback path and only show up in ``method_used``.
"""

from enum import StrEnum


class Component(StrEnum):
    """External collaborator that can become unavailable."""

    EMBEDDING = "embedding"
    VECTOR_STORE = "vector_store"
    TEXT_INDEX = "text_index"


class SearchError(Exception):
    """Base exception for search errors."""

    pass


class SearchValidationError(SearchError, ValueError):
    """Raised when a search request is rejected before any backend is queried."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ServiceUnavailableError(SearchError):
    """Raised when no applicable search method could answer the query."""

    def __init__(
        self,
        component: Component,
        causes: list[Component] | None = None,
        message: str | None = None,
    ):
        self.component = component
        self.causes = causes or []
        if message is None:
            message = f"Search unavailable: {component.value} failed"
            if self.causes:
                message += f" (also failed: {', '.join(c.value for c in self.causes)})"
        super().__init__(message)

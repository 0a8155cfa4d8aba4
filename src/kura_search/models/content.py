"""Captured content models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

EXCERPT_LENGTH = 200


class ContentType(StrEnum):
    """Kind of captured content."""

    TEXT = "text"
    IMAGE = "image"
    PDF = "pdf"
    AUDIO = "audio"


class EmbeddingStatus(StrEnum):
    """Whether a content item has been indexed in the vector store."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ContentItem(BaseModel):
    """Metadata for a single captured item (note, image, PDF, recording)."""

    id: str
    user_id: str | None = None
    content_type: ContentType
    file_path: str = ""
    title: str | None = None
    source: str | None = None
    tags: list[str] = Field(default_factory=list)
    annotation: str | None = None
    extracted_text: str | None = None
    embedding_status: EmbeddingStatus = EmbeddingStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def excerpt(self) -> str:
        """Short preview: annotation, else leading extracted text, else a placeholder."""
        if self.annotation and self.annotation.strip():
            return _truncate(self.annotation.strip(), EXCERPT_LENGTH)
        if self.extracted_text and self.extracted_text.strip():
            return _truncate(self.extracted_text.strip(), EXCERPT_LENGTH)
        return f"[{self.content_type.value} content - no excerpt available]"

    @property
    def embedding_text(self) -> str:
        """Text used for generating embeddings."""
        parts = [self.title, self.annotation, self.extracted_text]
        return " ".join(p for p in parts if p)


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."

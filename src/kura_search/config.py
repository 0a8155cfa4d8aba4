"""Environment-variable-based configuration."""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


def get_db_path() -> Path:
    """Return the database file path from KURA_DB_PATH."""
    raw = os.environ.get("KURA_DB_PATH", "~/.local/share/kura/kura.db")
    return Path(raw).expanduser()


def get_database_url() -> str | None:
    """Return the PostgreSQL URL from KURA_DATABASE_URL, if set."""
    return os.environ.get("KURA_DATABASE_URL") or None


def get_ollama_url() -> str:
    """Return the Ollama API URL from KURA_OLLAMA_URL."""
    return os.environ.get("KURA_OLLAMA_URL", "http://localhost:11434")


def get_embedding_model() -> str:
    """Return the embedding model name from KURA_EMBEDDING_MODEL."""
    return os.environ.get("KURA_EMBEDDING_MODEL", "nomic-embed-text")


def get_ollama_timeout() -> float:
    """Return the Ollama timeout in seconds from KURA_OLLAMA_TIMEOUT."""
    return float(os.environ.get("KURA_OLLAMA_TIMEOUT", "10.0"))


def get_embedding_dim() -> int:
    """Return the embedding vector dimensions from KURA_EMBEDDING_DIM."""
    return int(os.environ.get("KURA_EMBEDDING_DIM", "768"))


def get_log_level() -> str:
    """Return the logging level from KURA_LOG_LEVEL."""
    return os.environ.get("KURA_LOG_LEVEL", "WARNING")


def get_user_id() -> str:
    """Return the user this process searches on behalf of, from KURA_USER_ID."""
    return os.environ.get("KURA_USER_ID", "default")


def get_vector_timeout() -> float:
    """Return the vector search timeout (embed + KNN) from KURA_VECTOR_TIMEOUT."""
    return float(os.environ.get("KURA_VECTOR_TIMEOUT", "5.0"))


def get_fts_timeout() -> float:
    """Return the full-text search timeout from KURA_FTS_TIMEOUT."""
    return float(os.environ.get("KURA_FTS_TIMEOUT", "5.0"))


def get_history_timeout() -> float:
    """Return the search history write timeout from KURA_HISTORY_TIMEOUT."""
    return float(os.environ.get("KURA_HISTORY_TIMEOUT", "2.0"))


def get_fts_score_floor() -> float:
    """Return the normalized score given to the worst FTS hit, from KURA_FTS_SCORE_FLOOR."""
    return float(os.environ.get("KURA_FTS_SCORE_FLOOR", "0.1"))


def get_overfetch_factor() -> int:
    """Return the candidate over-fetch multiplier from KURA_OVERFETCH_FACTOR."""
    return int(os.environ.get("KURA_OVERFETCH_FACTOR", "3"))


def get_breaker_threshold() -> int:
    """Return consecutive vector failures before skipping it, from KURA_BREAKER_THRESHOLD."""
    return int(os.environ.get("KURA_BREAKER_THRESHOLD", "3"))


def get_breaker_recovery() -> float:
    """Return seconds before a tripped vector path is tried again, from KURA_BREAKER_RECOVERY."""
    return float(os.environ.get("KURA_BREAKER_RECOVERY", "30.0"))


class SearchSettings(BaseModel):
    """Read-only search configuration shared by all calls on a searcher."""

    model_config = ConfigDict(frozen=True)

    vector_timeout: float = Field(default=5.0, gt=0)
    fts_timeout: float = Field(default=5.0, gt=0)
    history_timeout: float = Field(default=2.0, gt=0)
    fts_score_floor: float = Field(default=0.1, gt=0.0, lt=1.0)
    overfetch_factor: int = Field(default=3, ge=1, le=10)
    max_fetch: int = Field(default=150, ge=1)

    @classmethod
    def from_env(cls) -> "SearchSettings":
        """Build settings from KURA_* environment variables."""
        return cls(
            vector_timeout=get_vector_timeout(),
            fts_timeout=get_fts_timeout(),
            history_timeout=get_history_timeout(),
            fts_score_floor=get_fts_score_floor(),
            overfetch_factor=get_overfetch_factor(),
        )

    def fetch_limit(self, limit: int) -> int:
        """Number of candidates to request from each adapter for a result limit."""
        return min(limit * self.overfetch_factor, max(self.max_fetch, limit))

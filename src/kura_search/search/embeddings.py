"""Ollama embedding client with graceful degradation."""

import logging

import httpx

from kura_search.config import get_embedding_model, get_ollama_timeout, get_ollama_url

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 8000


class EmbeddingClient:
    """Generates embeddings via Ollama's /api/embed endpoint.

    Failures never raise: ``embed`` returns None and the caller decides what
    "no embedding" means. Availability across calls is tracked by the
    searcher's circuit breaker, not here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_text_length: int = MAX_TEXT_LENGTH,
    ):
        """Initialize with an optional HTTP client and overrides for the KURA_* settings."""
        self._http = http_client
        self.base_url = base_url or get_ollama_url()
        self.model = model or get_embedding_model()
        self.timeout = timeout if timeout is not None else get_ollama_timeout()
        self.max_text_length = max_text_length

    async def is_available(self) -> bool:
        """Check whether Ollama is reachable."""
        try:
            client = self._get_client()
            resp = await client.get(f"{self.base_url}/api/tags", timeout=self.timeout)
            resp.raise_for_status()
        except Exception:
            logger.warning("Ollama not available at %s", self.base_url)
            return False
        return True

    async def embed(self, text: str) -> list[float] | None:
        """Generate an embedding vector for the given text. Returns None if unavailable."""
        if not text or not text.strip():
            return None
        if len(text) > self.max_text_length:
            logger.debug("Truncating embedding input from %d chars", len(text))
            text = text[: self.max_text_length]
        try:
            client = self._get_client()
            resp = await client.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": text},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
            # Ollama /api/embed returns {"embeddings": [[...]]}
            result: list[float] = data["embeddings"][0]
            return result
        except Exception:
            logger.warning("Embedding generation failed", exc_info=True)
            return None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def close(self) -> None:
        """Close the HTTP client if open."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

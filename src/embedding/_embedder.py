"""Query embedder backed by an OpenAI-compatible ``/embeddings`` endpoint.

Produces the 1536-dimension query vectors consumed by the vector and hybrid
adapters.  Transport failures are retried with the read-path policy.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import httpx

from src.embedding._exceptions import EmbedderNotAvailableError, EmbeddingServiceError
from src.embedding._models import validate_embedding
from src.utils._exceptions import RetryableTransportError
from src.utils._logging import get_logger
from src.utils._retry import READ_PATH_ATTEMPTS, retry_with_backoff

if TYPE_CHECKING:
    from src.embedding._models import EmbeddingSettings

_log = get_logger(__name__)


class QueryEmbedder:
    """Embeds query text; one HTTP client shared across concurrent requests."""

    def __init__(
        self,
        settings: EmbeddingSettings,
        client: httpx.AsyncClient | None = None,
        api_key: str | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._api_key = api_key if api_key is not None else os.environ.get(settings.api_key_env, "")

    @property
    def is_available(self) -> bool:
        return bool(self._api_key) or self._client is not None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if not self._api_key:
                msg = f"{self._settings.api_key_env} is not set; query embedding is unavailable"
                raise EmbedderNotAvailableError(msg)
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
            )
            _log.info("embedding_client_initialized", model=self._settings.model)
        return self._client

    def _embeddings_url(self) -> str:
        base = self._settings.base_url.rstrip("/")
        if not base.endswith("/v1"):
            base = f"{base}/v1"
        return f"{base}/embeddings"

    async def embed(self, text: str) -> list[float]:
        """Return the embedding for *text*.

        Raises:
            EmbedderNotAvailableError: No API key configured.
            EmbeddingServiceError: The endpoint failed after retries or
                returned a malformed payload.
            EmbeddingDimensionError: The vector has the wrong length.
        """
        client = self._ensure_client()
        payload: dict[str, Any] = {
            "model": self._settings.model,
            "input": text[: self._settings.max_input_chars],
        }

        async def _call() -> dict[str, Any]:
            resp = await client.post(self._embeddings_url(), json=payload)
            if resp.status_code >= 500 or resp.status_code == 429:
                msg = f"Embeddings endpoint returned {resp.status_code}"
                raise RetryableTransportError(msg, status=resp.status_code)
            resp.raise_for_status()
            return resp.json()

        try:
            data = await retry_with_backoff(
                _call,
                operation="embed_query",
                attempts=READ_PATH_ATTEMPTS,
                base_delay=self._settings.retry_base_delay,
            )
        except (httpx.HTTPError, RetryableTransportError) as exc:
            msg = f"Embedding request failed: {exc}"
            raise EmbeddingServiceError(msg) from exc

        try:
            embedding = [float(v) for v in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            msg = f"Malformed embeddings response: {str(data)[:200]}"
            raise EmbeddingServiceError(msg) from exc

        validate_embedding(embedding, self._settings.dimensions)
        return embedding

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

"""Shared fixtures for embedding tests."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from src.embedding._models import EmbeddingSettings


@pytest.fixture()
def embedding_settings() -> EmbeddingSettings:
    """Settings with zero retry delay so retry tests run instantly."""
    return EmbeddingSettings(retry_base_delay=0.0)


def embeddings_body(vector: list[float]) -> dict[str, Any]:
    return {"object": "list", "data": [{"object": "embedding", "index": 0, "embedding": vector}]}


@pytest.fixture()
def mock_client():
    """Factory fixture: ``mock_client(responses, captured)`` scripts HTTP replies.

    Each request pops the next ``(status, body)`` pair; the last pair repeats.
    """

    def _make(
        responses: list[tuple[int, Any]],
        captured: list[httpx.Request] | None = None,
    ) -> httpx.AsyncClient:
        queue = list(responses)

        def _handler(request: httpx.Request) -> httpx.Response:
            if captured is not None:
                captured.append(request)
            status, body = queue.pop(0) if len(queue) > 1 else queue[0]
            return httpx.Response(status, json=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(_handler))

    return _make


@pytest.fixture()
def body_for():
    """``body_for(vector)`` builds an OpenAI-style embeddings response."""
    return embeddings_body

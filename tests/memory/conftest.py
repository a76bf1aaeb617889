"""Shared fixtures for memory-service tests."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from src.memory._models import MemorySettings


@pytest.fixture()
def memory_settings() -> MemorySettings:
    """Settings with zero backoff so retry tests run instantly."""
    return MemorySettings(search_base_delay=0.0, ingest_base_delay=0.0)


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

        return httpx.AsyncClient(
            base_url="https://api.mem0.ai",
            transport=httpx.MockTransport(_handler),
        )

    return _make

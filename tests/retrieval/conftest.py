"""Shared fixtures for retrieval tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from src.retrieval._models import AdapterName, RetrievalSettings, RetrievedItem

FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


class _FakeMappings:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = rows

    def all(self) -> list[dict[str, Any]]:
        return list(self._rows)


class _FakeResult:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = rows

    def mappings(self) -> _FakeMappings:
        return _FakeMappings(self._rows)


class FakeSessionFactory:
    """Stands in for an ``async_sessionmaker``.

    Each ``execute`` pops the next scripted response: a list of row dicts,
    or an exception instance to raise.  Executed SQL and params are recorded.
    """

    def __init__(self, *responses: list[dict[str, Any]] | Exception) -> None:
        self._responses = list(responses)
        self.statements: list[str] = []
        self.params: list[dict[str, Any]] = []

    def __call__(self) -> FakeSessionFactory:
        return self

    async def __aenter__(self) -> FakeSessionFactory:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def execute(self, statement: Any, params: dict[str, Any]) -> _FakeResult:
        self.statements.append(str(statement))
        self.params.append(params)
        response = self._responses.pop(0) if self._responses else []
        if isinstance(response, Exception):
            raise response
        return _FakeResult(response)


@pytest.fixture()
def retrieval_settings() -> RetrievalSettings:
    """Default retrieval settings for tests."""
    return RetrievalSettings()


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def session_factory():
    """Factory fixture: ``session_factory(rows, error, ...)`` scripts responses."""
    return FakeSessionFactory


@pytest.fixture()
def embedding() -> list[float]:
    return [0.01] * 1536


@pytest.fixture()
def make_item():
    """Factory fixture for RetrievedItem with sensible defaults."""

    def _make(
        text: str = "Shipped a new AI feature today.",
        score: float = 0.8,
        source: AdapterName = AdapterName.VECTOR,
        created_at: datetime | None = None,
        **metadata: Any,
    ) -> RetrievedItem:
        return RetrievedItem(
            source=source,
            text=text,
            score=score,
            created_at=created_at,
            metadata=metadata,
        )

    return _make

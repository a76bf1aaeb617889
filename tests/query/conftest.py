"""Shared fixtures for query classification tests."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.query._models import QueryConfig, QuerySettings
from src.utils._llm_client import LLMResponse

FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def default_settings() -> QuerySettings:
    """Default query settings for tests."""
    return QuerySettings()


@pytest.fixture
def default_config() -> QueryConfig:
    """Default query config for tests."""
    return QueryConfig()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


def _make_provider(payload: dict[str, Any] | str) -> MagicMock:
    """A fake LLM provider whose acomplete returns *payload* as text."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    provider = MagicMock()
    provider.acomplete = AsyncMock(return_value=LLMResponse(text=text, model="fake", provider="fake"))
    return provider


@pytest.fixture
def make_provider():
    """Factory fixture: ``make_provider({...})`` builds a fake provider."""
    return _make_provider

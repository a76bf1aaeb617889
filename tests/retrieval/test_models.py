"""Tests for retrieval data models and ranking helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from src.query._models import DEFAULT_ANALYSIS
from src.retrieval._models import (
    AdapterName,
    ConfidenceLevel,
    HybridWeights,
    RetrievalResult,
    RetrievalSettings,
    RetrievedItem,
    SearchFilters,
    as_utc,
    clamp_score,
    ranking_key,
)


class TestRetrievedItem:
    def test_sources_default_to_source(self) -> None:
        item = RetrievedItem(source=AdapterName.MEMORY, text="likes hiking", score=0.6)
        assert item.sources == (AdapterName.MEMORY,)

    def test_explicit_sources_kept(self) -> None:
        item = RetrievedItem(
            source=AdapterName.VECTOR,
            sources=(AdapterName.VECTOR, AdapterName.HYBRID),
            text="x",
            score=0.5,
        )
        assert item.sources == (AdapterName.VECTOR, AdapterName.HYBRID)

    @pytest.mark.parametrize("score", [-0.1, 1.01])
    def test_score_bounds(self, score: float) -> None:
        with pytest.raises(ValidationError):
            RetrievedItem(source=AdapterName.VECTOR, text="x", score=score)

    def test_frozen(self) -> None:
        item = RetrievedItem(source=AdapterName.VECTOR, text="x", score=0.5)
        with pytest.raises(ValidationError):
            item.score = 0.9  # type: ignore[misc]


class TestRetrievalResult:
    def test_defaults(self) -> None:
        result = RetrievalResult()
        assert result.items == []
        assert result.confidence_level == ConfidenceLevel.NONE
        assert result.sources_used == []
        assert result.total_results == 0
        assert result.query_analysis == DEFAULT_ANALYSIS
        assert result.elapsed_ms == 0.0

    def test_elapsed_ms(self) -> None:
        start = datetime(2025, 1, 1, tzinfo=UTC)
        result = RetrievalResult(started_at=start, finished_at=start + timedelta(milliseconds=250))
        assert result.elapsed_ms == pytest.approx(250.0)


class TestSettings:
    def test_defaults(self) -> None:
        s = RetrievalSettings()
        assert s.embedding_dim == 1536
        assert s.vector_threshold == 0.3
        assert s.adapter_timeout_seconds == 8.0
        assert s.hybrid_weights == HybridWeights(keyword_weight=0.3, vector_weight=0.7)

    def test_schema_qualified_table_allowed(self) -> None:
        assert RetrievalSettings(content_table="public.social_contents").content_table == (
            "public.social_contents"
        )

    def test_table_injection_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RetrievalSettings(content_table="x; DROP TABLE y")

    def test_filters_frozen(self) -> None:
        filters = SearchFilters(user_id="u1", app_id="a1")
        with pytest.raises(ValidationError):
            filters.app_id = "a2"  # type: ignore[misc]


class TestHelpers:
    def test_clamp_score(self) -> None:
        assert clamp_score(-0.2) == 0.0
        assert clamp_score(1.7) == 1.0
        assert clamp_score(0.42) == 0.42

    def test_as_utc(self) -> None:
        naive = datetime(2025, 1, 1, 9, 30)
        assert as_utc(naive) == datetime(2025, 1, 1, 9, 30, tzinfo=UTC)
        assert as_utc(None) is None

    def test_ranking_key_orders_score_then_newest_then_undated(self) -> None:
        older = datetime(2025, 1, 1, tzinfo=UTC)
        newer = datetime(2025, 3, 1, tzinfo=UTC)
        items = [
            RetrievedItem(source=AdapterName.VECTOR, text="undated", score=0.7),
            RetrievedItem(source=AdapterName.VECTOR, text="older", score=0.7, created_at=older),
            RetrievedItem(source=AdapterName.VECTOR, text="best", score=0.9),
            RetrievedItem(source=AdapterName.VECTOR, text="newer", score=0.7, created_at=newer),
        ]
        ordered = [item.text for item in sorted(items, key=ranking_key)]
        assert ordered == ["best", "newer", "older", "undated"]

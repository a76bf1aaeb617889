"""Tests for query classification Pydantic models."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.query._models import (
    DEFAULT_ANALYSIS,
    AnswerType,
    ConfidenceRequirement,
    QueryAnalysis,
    QueryIntent,
    QuerySettings,
    RawQueryAnalysis,
    RawTemporalConstraint,
    Recency,
    TemporalConstraint,
    TemporalType,
)


class TestQueryIntent:
    def test_ten_intents(self) -> None:
        assert len(QueryIntent) == 10

    def test_values_are_snake_case(self) -> None:
        assert QueryIntent.UNCERTAINTY_TEST == "uncertainty_test"
        assert QueryIntent("content_search") is QueryIntent.CONTENT_SEARCH


class TestRawQueryAnalysis:
    """Schema the classifier output is validated against."""

    def test_camel_case_aliases(self) -> None:
        raw = RawQueryAnalysis.model_validate(
            {
                "intent": "recent_events",
                "entities": ["AI"],
                "temporalConstraint": {"type": "relative", "recency": "recent", "recencyDays": 7},
                "sourceFilter": ["LinkedIn"],
                "requiresAggregation": True,
                "expectedAnswerType": "content_list",
                "confidenceRequired": "medium",
            }
        )
        assert raw.intent == QueryIntent.RECENT_EVENTS
        assert raw.temporal_constraint is not None
        assert raw.temporal_constraint.recency_days == 7
        assert raw.source_filter == ["LinkedIn"]
        assert raw.requires_aggregation is True
        assert raw.expected_answer_type == AnswerType.CONTENT_LIST
        assert raw.confidence_required == ConfidenceRequirement.MEDIUM

    def test_empty_payload_uses_defaults(self) -> None:
        raw = RawQueryAnalysis.model_validate({})
        assert raw.intent == QueryIntent.CASUAL_CONVERSATION
        assert raw.entities == []
        assert raw.temporal_constraint is None
        assert raw.expected_answer_type == AnswerType.CONVERSATION
        assert raw.confidence_required == ConfidenceRequirement.LOW

    def test_unknown_intent_defaults_to_casual(self) -> None:
        raw = RawQueryAnalysis.model_validate({"intent": "weather_report"})
        assert raw.intent == QueryIntent.CASUAL_CONVERSATION

    def test_intent_case_insensitive(self) -> None:
        raw = RawQueryAnalysis.model_validate({"intent": " Opinion_Query "})
        assert raw.intent == QueryIntent.OPINION_QUERY

    def test_null_lists_become_empty(self) -> None:
        raw = RawQueryAnalysis.model_validate(
            {"entities": None, "contentTypeFilter": None, "sourceFilter": None}
        )
        assert raw.entities == []
        assert raw.content_type_filter == []
        assert raw.source_filter == []

    def test_string_list_field_wrapped(self) -> None:
        raw = RawQueryAnalysis.model_validate({"sourceFilter": "twitter"})
        assert raw.source_filter == ["twitter"]

    def test_blank_entries_dropped(self) -> None:
        raw = RawQueryAnalysis.model_validate({"entities": ["AI", " ", None, " remote work "]})
        assert raw.entities == ["AI", "remote work"]

    def test_unknown_enums_fall_back(self) -> None:
        raw = RawQueryAnalysis.model_validate(
            {"expectedAnswerType": "poem", "confidenceRequired": "absolute"}
        )
        assert raw.expected_answer_type == AnswerType.CONVERSATION
        assert raw.confidence_required == ConfidenceRequirement.LOW

    def test_non_mapping_temporal_dropped(self) -> None:
        raw = RawQueryAnalysis.model_validate({"temporalConstraint": "last week"})
        assert raw.temporal_constraint is None

    def test_snake_case_names_accepted(self) -> None:
        raw = RawQueryAnalysis.model_validate({"requires_private_info": True})
        assert raw.requires_private_info is True


class TestRawTemporalConstraint:
    def test_non_positive_days_dropped(self) -> None:
        assert RawTemporalConstraint.model_validate({"recencyDays": 0}).recency_days is None
        assert RawTemporalConstraint.model_validate({"recencyDays": -3}).recency_days is None

    def test_numeric_string_days_parsed(self) -> None:
        assert RawTemporalConstraint.model_validate({"recencyDays": "30"}).recency_days == 30

    def test_garbage_year_dropped(self) -> None:
        assert RawTemporalConstraint.model_validate({"yearMentioned": "soon"}).year_mentioned is None

    def test_unknown_type_defaults_relative(self) -> None:
        raw = RawTemporalConstraint.model_validate({"type": "fuzzy", "recency": "ancient"})
        assert raw.type == TemporalType.RELATIVE
        assert raw.recency == Recency.ANY


class TestQueryAnalysis:
    def test_default_analysis(self) -> None:
        assert DEFAULT_ANALYSIS.intent == QueryIntent.CASUAL_CONVERSATION
        assert DEFAULT_ANALYSIS.entities == []
        assert DEFAULT_ANALYSIS.temporal_constraint is None
        assert DEFAULT_ANALYSIS.confidence_required == ConfidenceRequirement.LOW
        assert DEFAULT_ANALYSIS.requires_private_info is False
        assert DEFAULT_ANALYSIS.expected_answer_type == AnswerType.CONVERSATION

    def test_private_info_forces_high_confidence(self) -> None:
        analysis = QueryAnalysis(
            intent=QueryIntent.FACTUAL_LOOKUP,
            requires_private_info=True,
            confidence_required=ConfidenceRequirement.LOW,
        )
        assert analysis.confidence_required == ConfidenceRequirement.HIGH
        assert analysis.suppresses_retrieval is True

    def test_uncertainty_test_suppresses_retrieval(self) -> None:
        analysis = QueryAnalysis(intent=QueryIntent.UNCERTAINTY_TEST)
        assert analysis.suppresses_retrieval is True

    def test_regular_intent_does_not_suppress(self) -> None:
        assert QueryAnalysis(intent=QueryIntent.OPINION_QUERY).suppresses_retrieval is False

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_ANALYSIS.intent = QueryIntent.RECENT_EVENTS  # type: ignore[misc]


class TestTemporalConstraint:
    def test_has_window(self) -> None:
        tc = TemporalConstraint(
            type=TemporalType.RELATIVE,
            recency_days=7,
            start_date=datetime(2025, 1, 1, tzinfo=UTC),
            end_date=datetime(2025, 1, 8, tzinfo=UTC),
        )
        assert tc.has_window is True

    def test_no_window(self) -> None:
        assert TemporalConstraint(type=TemporalType.RELATIVE).has_window is False


class TestQuerySettings:
    def test_defaults(self) -> None:
        s = QuerySettings()
        assert s.llm_component == "query_classifier"
        assert s.temperature == 0.0
        assert s.timeout_seconds == 10.0
        assert "twitter" in s.platforms

"""Data models for query classification.

Defines the intent taxonomy, the temporal constraint, the raw schema the
structured-output call is validated against, the final ``QueryAnalysis``,
and configuration settings.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# --- Enums ---


class QueryIntent(StrEnum):
    """What kind of answer a query is seeking. Exactly one per query."""

    FACTUAL_LOOKUP = "factual_lookup"
    RECENT_EVENTS = "recent_events"
    HISTORICAL_TIMELINE = "historical_timeline"
    PERSONALITY_QUERY = "personality_query"
    OPINION_QUERY = "opinion_query"
    CONTENT_SEARCH = "content_search"
    ANALYTICS_QUERY = "analytics_query"
    CASUAL_CONVERSATION = "casual_conversation"
    UNCERTAINTY_TEST = "uncertainty_test"
    STORY_REQUEST = "story_request"


class TemporalType(StrEnum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"


class Recency(StrEnum):
    RECENT = "recent"
    HISTORICAL = "historical"
    ANY = "any"


class AnswerType(StrEnum):
    SPECIFIC_FACTS = "specific_facts"
    OPINIONS = "opinions"
    CONTENT_LIST = "content_list"
    SUMMARY = "summary"
    CONVERSATION = "conversation"


class ConfidenceRequirement(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _coerce_enum(value: Any, enum_cls: type[StrEnum], default: StrEnum) -> Any:
    """Map unknown strings to *default* instead of failing validation."""
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {member.value for member in enum_cls}:
            return lowered
        return default
    return value


# --- Raw structured output ---


class RawTemporalConstraint(BaseModel):
    """Temporal fields as emitted by the classification model.

    Carries only a type, a recency bucket and optionally a day count or a
    year; concrete dates are derived later.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: TemporalType = TemporalType.RELATIVE
    recency: Recency = Recency.ANY
    recency_days: int | None = Field(default=None, alias="recencyDays")
    year_mentioned: int | None = Field(default=None, alias="yearMentioned")

    @field_validator("type", mode="before")
    @classmethod
    def _type_default(cls, value: Any) -> Any:
        return _coerce_enum(value, TemporalType, TemporalType.RELATIVE)

    @field_validator("recency", mode="before")
    @classmethod
    def _recency_default(cls, value: Any) -> Any:
        return _coerce_enum(value, Recency, Recency.ANY)

    @field_validator("recency_days", "year_mentioned", mode="before")
    @classmethod
    def _positive_int_or_none(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None


class RawQueryAnalysis(BaseModel):
    """Schema the structured-output call is validated against.

    Every field has a default so partial or slightly malformed model output
    degrades to defaults rather than failing validation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    intent: QueryIntent = QueryIntent.CASUAL_CONVERSATION
    entities: list[str] = Field(default_factory=list)
    temporal_constraint: RawTemporalConstraint | None = Field(
        default=None, alias="temporalConstraint"
    )
    content_type_filter: list[str] = Field(default_factory=list, alias="contentTypeFilter")
    source_filter: list[str] = Field(default_factory=list, alias="sourceFilter")
    requires_aggregation: bool = Field(default=False, alias="requiresAggregation")
    expected_answer_type: AnswerType = Field(
        default=AnswerType.CONVERSATION, alias="expectedAnswerType"
    )
    confidence_required: ConfidenceRequirement = Field(
        default=ConfidenceRequirement.LOW, alias="confidenceRequired"
    )
    requires_private_info: bool = Field(default=False, alias="requiresPrivateInfo")

    @field_validator("intent", mode="before")
    @classmethod
    def _intent_default(cls, value: Any) -> Any:
        return _coerce_enum(value, QueryIntent, QueryIntent.CASUAL_CONVERSATION)

    @field_validator("expected_answer_type", mode="before")
    @classmethod
    def _answer_type_default(cls, value: Any) -> Any:
        return _coerce_enum(value, AnswerType, AnswerType.CONVERSATION)

    @field_validator("confidence_required", mode="before")
    @classmethod
    def _confidence_default(cls, value: Any) -> Any:
        return _coerce_enum(value, ConfidenceRequirement, ConfidenceRequirement.LOW)

    @field_validator("entities", "content_type_filter", "source_filter", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list | tuple):
            return []
        return [str(v).strip() for v in value if v is not None and str(v).strip()]

    @field_validator("temporal_constraint", mode="before")
    @classmethod
    def _drop_non_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


# --- Final analysis ---


class TemporalConstraint(BaseModel):
    """A derived date window.

    ``recency_days`` is set iff ``type`` is relative.  ``start_date`` and
    ``end_date`` are always computed by
    :func:`src.query._temporal.resolve_temporal_constraint`.
    """

    model_config = ConfigDict(frozen=True)

    type: TemporalType
    recency: Recency = Recency.ANY
    recency_days: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    @property
    def has_window(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class QueryAnalysis(BaseModel):
    """Structured classification of one query."""

    model_config = ConfigDict(frozen=True)

    intent: QueryIntent = QueryIntent.CASUAL_CONVERSATION
    entities: list[str] = Field(default_factory=list)
    temporal_constraint: TemporalConstraint | None = None
    content_type_filter: list[str] = Field(default_factory=list)
    source_filter: list[str] = Field(default_factory=list)
    requires_aggregation: bool = False
    expected_answer_type: AnswerType = AnswerType.CONVERSATION
    confidence_required: ConfidenceRequirement = ConfidenceRequirement.LOW
    requires_private_info: bool = False

    @model_validator(mode="before")
    @classmethod
    def _private_info_needs_high_confidence(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("requires_private_info"):
            return {**data, "confidence_required": ConfidenceRequirement.HIGH}
        return data

    @property
    def suppresses_retrieval(self) -> bool:
        """Private or never-ingested information: nothing may be retrieved."""
        return self.intent == QueryIntent.UNCERTAINTY_TEST or self.requires_private_info


DEFAULT_ANALYSIS = QueryAnalysis()


# --- Configuration ---


class QuerySettings(BaseModel):
    """Query classification settings from configs/query.yaml."""

    llm_component: str = "query_classifier"
    max_tokens: int = 512
    temperature: float = 0.0
    timeout_seconds: float = 10.0
    platforms: list[str] = Field(
        default_factory=lambda: [
            "linkedin",
            "twitter",
            "facebook",
            "instagram",
            "threads",
            "reddit",
            "medium",
            "substack",
            "github",
            "youtube",
            "producthunt",
            "goodreads",
        ],
    )


class QueryConfig(BaseModel):
    """Root model for configs/query.yaml."""

    settings: QuerySettings = Field(default_factory=QuerySettings)

"""Data models for the retrieval module.

Defines adapter identifiers, the per-item and per-query result shapes,
filters passed to the store adapters, and configuration settings.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.query._models import DEFAULT_ANALYSIS, QueryAnalysis

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?")

# --- Enums ---


class AdapterName(StrEnum):
    """Identifier of the store adapter an item came from."""

    VECTOR = "vector"
    HYBRID = "hybrid"
    TEMPORAL = "temporal"
    MEMORY = "memory"


class ConfidenceLevel(StrEnum):
    """How much downstream generation may trust the retrieved items."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


# --- Adapter inputs ---


class SearchFilters(BaseModel):
    """Tenant scoping shared by the store adapters; both fields AND-combine."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    app_id: str | None = None
    source_filter: list[str] = Field(default_factory=list)


class DateWindow(BaseModel):
    """Inclusive creation-time window."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class HybridWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword_weight: float = 0.3
    vector_weight: float = 0.7


# --- Results ---


class RetrievedItem(BaseModel):
    """One piece of persona content returned by an adapter.

    ``source`` is the adapter that produced the item; ``sources`` lists every
    adapter whose copy collapsed into it during merging.
    """

    model_config = ConfigDict(frozen=True)

    source: AdapterName
    sources: tuple[AdapterName, ...] = ()
    external_ref: str | None = None
    text: str
    score: float = Field(ge=0.0, le=1.0)
    created_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _default_sources(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("sources") and data.get("source"):
            return {**data, "sources": (data["source"],)}
        return data


class RetrievalResult(BaseModel):
    """Outcome of one ``retrieve`` call. Always returned, never raised."""

    query_text: str = ""
    items: list[RetrievedItem] = Field(default_factory=list)
    confidence_level: ConfidenceLevel = ConfidenceLevel.NONE
    sources_used: list[AdapterName] = Field(default_factory=list)
    total_results: int = 0
    query_analysis: QueryAnalysis = DEFAULT_ANALYSIS
    requires_aggregation: bool = False
    errors: list[str] = Field(default_factory=list)
    timings: dict[str, float] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def elapsed_ms(self) -> float:
        """Total elapsed time in milliseconds."""
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds() * 1000


# --- Config models ---


class RetrievalSettings(BaseModel):
    """Retrieval-specific settings from configs/retrieval.yaml."""

    # Qdrant
    qdrant_url: str | None = None
    qdrant_host: str = "localhost"
    qdrant_port: int = 6333
    qdrant_api_key_env: str = "QDRANT_API_KEY"
    collection: str = "persona_contents"

    # PostgreSQL (DATABASE_URL overrides)
    database_url: str = "postgresql+asyncpg://localhost:5432/persona"
    content_table: str = "social_contents"
    pool_size: int = 5

    # Vector adapter
    embedding_dim: int = 1536
    vector_limit: int = 20
    vector_threshold: float = 0.3

    # Hybrid adapter
    hybrid_limit: int = 20
    keyword_weight: float = 0.3
    vector_weight: float = 0.7
    candidate_similarity_floor: float = 0.7

    # Temporal adapter
    temporal_limit: int = 50

    # Orchestration
    adapter_timeout_seconds: float = 8.0
    max_results: int = 30
    recent_boost_week: float = 1.5
    recent_boost_month: float = 1.2

    # Confidence calibration
    medium_min_score: float = 0.5
    medium_min_count: int = 2
    high_min_score: float = 0.75
    high_min_count: int = 3
    # Applied when the query requires high confidence
    strict_medium_min_score: float = 0.7
    strict_medium_min_count: int = 2
    strict_high_min_score: float = 0.85
    strict_high_min_count: int = 3

    @field_validator("content_table")
    @classmethod
    def _plain_identifier(cls, value: str) -> str:
        if not _IDENTIFIER.fullmatch(value):
            msg = f"content_table must be a plain SQL identifier, got {value!r}"
            raise ValueError(msg)
        return value

    @property
    def hybrid_weights(self) -> HybridWeights:
        return HybridWeights(keyword_weight=self.keyword_weight, vector_weight=self.vector_weight)


class RetrievalConfig(BaseModel):
    """Root model for configs/retrieval.yaml."""

    settings: RetrievalSettings = Field(default_factory=RetrievalSettings)


def clamp_score(value: float) -> float:
    """Clamp a raw similarity or rank into the 0..1 item score range."""
    return min(max(float(value), 0.0), 1.0)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps from the stores as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def ranking_key(item: RetrievedItem) -> tuple[float, int, float]:
    """Sort key: score descending, then created_at descending with nulls last."""
    created = as_utc(item.created_at)
    if created is None:
        return (-item.score, 1, 0.0)
    return (-item.score, 0, -created.timestamp())

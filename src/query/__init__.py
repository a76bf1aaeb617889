"""Query classification: intent, entities, filters and date windows."""

from src.query._classifier import QueryClassifier
from src.query._models import (
    DEFAULT_ANALYSIS,
    QueryAnalysis,
    QueryIntent,
    QuerySettings,
    TemporalConstraint,
)
from src.query._temporal import resolve_temporal_constraint

__all__ = [
    "DEFAULT_ANALYSIS",
    "QueryAnalysis",
    "QueryClassifier",
    "QueryIntent",
    "QuerySettings",
    "TemporalConstraint",
    "resolve_temporal_constraint",
]

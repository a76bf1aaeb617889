"""Retrieval orchestration: strategy selection, concurrent fan-out, merging.

``build_orchestrator`` and ``RetrievalPipeline`` live in
``src.retrieval._factory`` and ``src.retrieval.pipeline``; they depend on
``src.memory``, which itself builds on the models exported here.
"""

from src.retrieval._exceptions import (
    AdapterError,
    AdapterTimeoutError,
    EmbeddingDimensionError,
    RetrievalError,
)
from src.retrieval._hybrid import HybridRelationalSearch, keyword_tier
from src.retrieval._merger import MergeOutcome, ResultMerger
from src.retrieval._models import (
    AdapterName,
    ConfidenceLevel,
    DateWindow,
    HybridWeights,
    RetrievalConfig,
    RetrievalResult,
    RetrievalSettings,
    RetrievedItem,
    SearchFilters,
)
from src.retrieval._orchestrator import RetrievalOrchestrator
from src.retrieval._temporal import TemporalRetriever
from src.retrieval._vector import VectorSearchAdapter

__all__ = [
    "AdapterError",
    "AdapterName",
    "AdapterTimeoutError",
    "ConfidenceLevel",
    "DateWindow",
    "EmbeddingDimensionError",
    "HybridRelationalSearch",
    "HybridWeights",
    "MergeOutcome",
    "ResultMerger",
    "RetrievalConfig",
    "RetrievalError",
    "RetrievalOrchestrator",
    "RetrievalResult",
    "RetrievalSettings",
    "RetrievedItem",
    "SearchFilters",
    "TemporalRetriever",
    "VectorSearchAdapter",
    "keyword_tier",
]

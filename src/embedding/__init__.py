from __future__ import annotations

from src.embedding._config import load_embedding_config
from src.embedding._embedder import QueryEmbedder
from src.embedding._models import (
    EMBEDDING_DIMENSIONS,
    EmbeddingConfig,
    EmbeddingSettings,
    validate_embedding,
)

__all__ = [
    "EMBEDDING_DIMENSIONS",
    "EmbeddingConfig",
    "EmbeddingSettings",
    "QueryEmbedder",
    "load_embedding_config",
    "validate_embedding",
]

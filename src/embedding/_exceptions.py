from __future__ import annotations

from src.utils._exceptions import EmbeddingDimensionError, PersonaRAGError

__all__ = [
    "EmbedderNotAvailableError",
    "EmbeddingDimensionError",
    "EmbeddingError",
    "EmbeddingServiceError",
]


class EmbeddingError(PersonaRAGError):
    """Base exception for the embedding module."""


class EmbedderNotAvailableError(EmbeddingError):
    """The embedding service is not configured (missing API key)."""


class EmbeddingServiceError(EmbeddingError):
    """The embeddings endpoint failed or returned an unusable response."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from src.utils._exceptions import EmbeddingDimensionError

EMBEDDING_DIMENSIONS = 1536


def validate_embedding(
    embedding: Sequence[float],
    expected: int = EMBEDDING_DIMENSIONS,
) -> None:
    """Raise EmbeddingDimensionError unless *embedding* has *expected* values."""
    if len(embedding) != expected:
        raise EmbeddingDimensionError(len(embedding), expected)


# --- Config models ---


class EmbeddingSettings(BaseModel):
    """Query-embedding settings from configs/embedding.yaml."""

    base_url: str = "https://api.openai.com/v1"
    model: str = "text-embedding-3-small"
    dimensions: int = EMBEDDING_DIMENSIONS
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: float = 10.0
    max_input_chars: int = 8000
    retry_base_delay: float = 1.0


class EmbeddingConfig(BaseModel):
    """Root model for configs/embedding.yaml."""

    settings: EmbeddingSettings = Field(default_factory=EmbeddingSettings)

from __future__ import annotations

from src.utils._exceptions import EmbeddingDimensionError, PersonaRAGError

__all__ = [
    "AdapterError",
    "AdapterTimeoutError",
    "EmbeddingDimensionError",
    "RetrievalError",
    "SearchNotAvailableError",
]


class RetrievalError(PersonaRAGError):
    """Base exception for the retrieval module."""


class AdapterError(RetrievalError):
    """A store adapter call failed; the orchestrator drops that adapter."""

    def __init__(self, adapter: str, message: str) -> None:
        super().__init__(f"{adapter}: {message}")
        self.adapter = adapter


class AdapterTimeoutError(AdapterError):
    """A store adapter call exceeded its per-call timeout."""

    def __init__(self, adapter: str, timeout_seconds: float) -> None:
        super().__init__(adapter, f"timed out after {timeout_seconds:.1f}s")
        self.timeout_seconds = timeout_seconds


class SearchNotAvailableError(RetrievalError):
    """A required retrieval dependency (qdrant-client, sqlalchemy) is not installed."""

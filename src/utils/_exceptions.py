from __future__ import annotations


class PersonaRAGError(Exception):
    """Root exception for the persona retrieval core."""


class ConfigurationError(PersonaRAGError):
    """Invalid or missing configuration."""


class ValidationError(PersonaRAGError):
    """Input failed validation before any store or network access."""


class LLMError(PersonaRAGError):
    """Base exception for LLM provider errors."""


class LLMNotAvailableError(LLMError):
    """Required LLM dependency not installed or provider unreachable."""


class LLMCallError(LLMError):
    """An LLM API call failed."""


class RetryableTransportError(PersonaRAGError):
    """A transport-level failure that the retry predicate accepts.

    Carries the HTTP status (if any) so callers can log it after retries
    are exhausted.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class EmbeddingDimensionError(ValidationError):
    """An embedding does not have the expected number of dimensions."""

    def __init__(self, actual: int, expected: int) -> None:
        super().__init__(f"Embedding must have {expected} dimensions, got {actual}")
        self.actual = actual
        self.expected = expected

from __future__ import annotations

from src.utils._exceptions import (
    ConfigurationError,
    EmbeddingDimensionError,
    LLMCallError,
    LLMError,
    LLMNotAvailableError,
    PersonaRAGError,
    RetryableTransportError,
    ValidationError,
)
from src.utils._hashing import content_hash, normalize_text
from src.utils._llm_client import (
    BaseLLMProvider,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    clear_provider_cache,
    get_llm_provider,
    load_llm_config,
)
from src.utils._logging import configure_logging, get_logger, request_context
from src.utils._retry import (
    INGEST_PATH_ATTEMPTS,
    READ_PATH_ATTEMPTS,
    is_retryable_error,
    retry_with_backoff,
)

__all__ = [
    "INGEST_PATH_ATTEMPTS",
    "READ_PATH_ATTEMPTS",
    "BaseLLMProvider",
    "ConfigurationError",
    "EmbeddingDimensionError",
    "LLMCallError",
    "LLMConfig",
    "LLMError",
    "LLMMessage",
    "LLMNotAvailableError",
    "LLMResponse",
    "PersonaRAGError",
    "RetryableTransportError",
    "ValidationError",
    "clear_provider_cache",
    "configure_logging",
    "content_hash",
    "get_llm_provider",
    "get_logger",
    "is_retryable_error",
    "load_llm_config",
    "normalize_text",
    "request_context",
    "retry_with_backoff",
]

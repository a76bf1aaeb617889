from __future__ import annotations

from src.retrieval._exceptions import AdapterError


class MemoryServiceError(AdapterError):
    """The long-term memory service failed, or retries were exhausted."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__("memory", message)
        self.status = status

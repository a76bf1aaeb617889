"""Models for the long-term memory service client."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MemoryRecord(BaseModel):
    """One memory entry as returned by the service."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    memory: str = ""
    score: float | None = None
    metadata: dict[str, Any] | None = None
    created_at: str | None = None
    updated_at: str | None = None


# --- Config models ---


class MemorySettings(BaseModel):
    """Memory-service settings from configs/memory.yaml."""

    base_url: str = "https://api.mem0.ai"
    api_key_env: str = "MEM0_API_KEY"
    timeout_seconds: float = 15.0
    min_score: float = 0.4
    search_base_delay: float = 1.0
    ingest_base_delay: float = 2.0
    max_delay: float = 30.0


class MemoryConfig(BaseModel):
    """Root model for configs/memory.yaml."""

    settings: MemorySettings = Field(default_factory=MemorySettings)

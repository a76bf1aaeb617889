"""Long-term memory service client (search and ingestion)."""

from src.memory._adapter import LongTermMemoryAdapter
from src.memory._config import load_memory_config
from src.memory._exceptions import MemoryServiceError
from src.memory._models import MemoryConfig, MemoryRecord, MemorySettings

__all__ = [
    "LongTermMemoryAdapter",
    "MemoryConfig",
    "MemoryRecord",
    "MemoryServiceError",
    "MemorySettings",
    "load_memory_config",
]

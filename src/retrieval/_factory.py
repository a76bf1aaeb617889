"""Explicit composition of the orchestrator from config files."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.embedding._config import load_embedding_config
from src.embedding._embedder import QueryEmbedder
from src.memory._adapter import LongTermMemoryAdapter
from src.memory._config import load_memory_config
from src.query._classifier import QueryClassifier
from src.query._config import load_query_config
from src.retrieval._config import load_retrieval_config
from src.retrieval._database import create_session_factory
from src.retrieval._exceptions import SearchNotAvailableError
from src.retrieval._hybrid import HybridRelationalSearch
from src.retrieval._merger import ResultMerger
from src.retrieval._orchestrator import RetrievalOrchestrator
from src.retrieval._temporal import TemporalRetriever
from src.retrieval._vector import VectorSearchAdapter
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Any

    from src.embedding._models import EmbeddingConfig
    from src.memory._models import MemoryConfig
    from src.query._models import QueryConfig
    from src.retrieval._models import RetrievalConfig

_log = get_logger(__name__)


def build_orchestrator(
    retrieval_config: RetrievalConfig | None = None,
    query_config: QueryConfig | None = None,
    memory_config: MemoryConfig | None = None,
    embedding_config: EmbeddingConfig | None = None,
    *,
    config_dir: Path | None = None,
    session_factory: Any = None,
) -> RetrievalOrchestrator:
    """Wire every adapter from configs; missing configs load from *config_dir*.

    The relational adapters are left out (and logged) when no SQL driver is
    installed; the orchestrator then never selects them.
    """

    def _path(name: str) -> Path | None:
        return config_dir / name if config_dir is not None else None

    retrieval_config = retrieval_config or load_retrieval_config(_path("retrieval.yaml"))
    query_config = query_config or load_query_config(_path("query.yaml"))
    memory_config = memory_config or load_memory_config(_path("memory.yaml"))
    embedding_config = embedding_config or load_embedding_config(_path("embedding.yaml"))
    settings = retrieval_config.settings

    if session_factory is None:
        try:
            session_factory = create_session_factory(settings)
        except SearchNotAvailableError as exc:
            _log.warning("relational_adapters_disabled", error=str(exc))

    hybrid = HybridRelationalSearch(settings, session_factory) if session_factory else None
    temporal = TemporalRetriever(settings, session_factory) if session_factory else None

    return RetrievalOrchestrator(
        settings,
        QueryClassifier(query_config.settings),
        embedder=QueryEmbedder(embedding_config.settings),
        vector=VectorSearchAdapter(settings),
        memory=LongTermMemoryAdapter(memory_config.settings),
        hybrid=hybrid,
        temporal=temporal,
        merger=ResultMerger(settings),
    )

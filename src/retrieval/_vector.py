"""Semantic nearest-neighbour search against the Qdrant content collection."""

from __future__ import annotations

import os
from datetime import datetime
from typing import TYPE_CHECKING, Any

from src.embedding._models import validate_embedding
from src.retrieval._exceptions import AdapterError, SearchNotAvailableError
from src.retrieval._models import AdapterName, RetrievedItem, clamp_score
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from src.retrieval._models import RetrievalSettings, SearchFilters

_log = get_logger(__name__)

# Payload keys promoted to RetrievedItem fields; the rest goes to metadata.
_RESERVED_PAYLOAD_KEYS = frozenset({"text", "content", "external_id", "created_at"})


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _point_to_item(point: Any) -> RetrievedItem:
    """Convert a Qdrant ScoredPoint to a RetrievedItem."""
    payload = getattr(point, "payload", None) or {}
    external_ref = payload.get("external_id")
    return RetrievedItem(
        source=AdapterName.VECTOR,
        external_ref=str(external_ref) if external_ref is not None else str(getattr(point, "id", "")),
        text=payload.get("text") or payload.get("content") or "",
        score=clamp_score(getattr(point, "score", 0.0)),
        created_at=_parse_timestamp(payload.get("created_at")),
        metadata={k: v for k, v in payload.items() if k not in _RESERVED_PAYLOAD_KEYS},
    )


class VectorSearchAdapter:
    """Cosine similarity search scoped by user_id / app_id payload filters.

    Holds no per-query state; one instance serves concurrent requests.
    """

    def __init__(self, settings: RetrievalSettings, client: Any = None) -> None:
        self._settings = settings
        self._client = client

    async def query(
        self,
        embedding: list[float],
        filters: SearchFilters,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[RetrievedItem]:
        """Return items with ``score > threshold``, nearest first.

        Raises:
            EmbeddingDimensionError: Before any store access when the
                embedding has the wrong length.
            AdapterError: The store call failed.
        """
        validate_embedding(embedding, self._settings.embedding_dim)
        limit = limit or self._settings.vector_limit
        threshold = self._settings.vector_threshold if threshold is None else threshold

        self._ensure_client()
        try:
            response = await self._client.query_points(
                collection_name=self._settings.collection,
                query=embedding,
                query_filter=self._build_filter(filters),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as exc:
            raise AdapterError(AdapterName.VECTOR, f"query_points failed: {exc}") from exc

        points = getattr(response, "points", response) or []
        items = [
            _point_to_item(point)
            for point in points
            if float(getattr(point, "score", 0.0)) > threshold
        ]
        items = [item for item in items if item.text]
        items.sort(key=lambda item: item.score, reverse=True)
        _log.debug("vector_search_complete", hits=len(points), kept=len(items))
        return items

    @staticmethod
    def _build_filter(filters: SearchFilters) -> Any:
        from qdrant_client.models import FieldCondition, Filter, MatchValue

        must = [
            FieldCondition(key=key, match=MatchValue(value=value))
            for key, value in (("user_id", filters.user_id), ("app_id", filters.app_id))
            if value is not None
        ]
        return Filter(must=must) if must else None

    def _ensure_client(self) -> None:
        if self._client is not None:
            return
        try:
            from qdrant_client import AsyncQdrantClient
        except ImportError as exc:
            msg = "qdrant-client is required. Install with: pip install qdrant-client"
            raise SearchNotAvailableError(msg) from exc

        api_key = os.environ.get(self._settings.qdrant_api_key_env) or None
        if self._settings.qdrant_url:
            self._client = AsyncQdrantClient(url=self._settings.qdrant_url, api_key=api_key)
        else:
            self._client = AsyncQdrantClient(
                host=self._settings.qdrant_host,
                port=self._settings.qdrant_port,
                api_key=api_key,
            )
        _log.info("qdrant_client_initialized", collection=self._settings.collection)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

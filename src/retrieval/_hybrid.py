"""Hybrid keyword + semantic search over the relational content table.

Candidate rows come from PostgreSQL (``ILIKE`` patterns OR pgvector cosine
similarity above a floor), ranked there by the weighted score before the
candidate limit.  The keyword tier and the weighted sum are then recomputed
here and that score is the one returned.

Keyword tiers:
    1.0  the whole keyword occurs as a case-insensitive substring
    0.8  every word of the keyword occurs, in order (``LIKE '%w1%w2%'``)
    0.0  otherwise

Without an embedding, or when the hybrid query fails, the search degrades
to PostgreSQL full-text ranking (``ts_rank`` / ``plainto_tsquery('simple')``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from src.embedding._models import validate_embedding
from src.retrieval._database import row_to_metadata
from src.retrieval._exceptions import AdapterError
from src.retrieval._models import (
    AdapterName,
    HybridWeights,
    RetrievedItem,
    as_utc,
    clamp_score,
    ranking_key,
)
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from src.retrieval._models import RetrievalSettings, SearchFilters

_log = get_logger(__name__)

EXACT_TIER = 1.0
ORDERED_WORDS_TIER = 0.8


def keyword_tier(text: str, keyword: str) -> float:
    """Return the keyword match tier of *text* for *keyword*."""
    haystack = text.lower()
    needle = keyword.strip().lower()
    if not needle:
        return 0.0
    if needle in haystack:
        return EXACT_TIER

    words = needle.split()
    if len(words) < 2:
        return 0.0
    position = 0
    for word in words:
        found = haystack.find(word, position)
        if found < 0:
            return 0.0
        position = found + len(word)
    return ORDERED_WORDS_TIER


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_patterns(keyword: str) -> tuple[str, str]:
    """Return the exact-substring and ordered-words ILIKE patterns."""
    words = [_escape_like(w) for w in keyword.strip().split()]
    exact = f"%{_escape_like(keyword.strip())}%"
    ordered = "%" + "%".join(words) + "%" if words else "%"
    return exact, ordered


def _vector_literal(embedding: list[float]) -> str:
    return "[" + ",".join(repr(float(v)) for v in embedding) + "]"


class HybridRelationalSearch:
    """Keyword-tier + vector-similarity search over the content table."""

    def __init__(self, settings: RetrievalSettings, session_factory: Any) -> None:
        self._settings = settings
        self._session_factory = session_factory

    async def search(
        self,
        keyword: str,
        embedding: list[float] | None,
        filters: SearchFilters,
        weights: HybridWeights | None = None,
        limit: int | None = None,
    ) -> list[RetrievedItem]:
        """Return items ranked by the combined score.

        Raises:
            EmbeddingDimensionError: Before any store access when the
                embedding has the wrong length.
            AdapterError: Both the hybrid query and the full-text fallback
                failed.
        """
        if embedding is not None:
            validate_embedding(embedding, self._settings.embedding_dim)
        weights = weights or self._settings.hybrid_weights
        limit = limit or self._settings.hybrid_limit

        if embedding is None or not keyword.strip():
            return await self.full_text_search(keyword, filters, limit=limit)

        try:
            rows = await self._fetch_candidates(keyword, embedding, filters, weights, limit)
        except Exception as exc:
            _log.warning(
                "hybrid_search_degraded_to_full_text",
                app_id=filters.app_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return await self.full_text_search(keyword, filters, limit=limit)

        items = [self._score_row(row, keyword, weights) for row in rows]
        items = [item for item in items if item.text]
        items.sort(key=ranking_key)
        _log.debug("hybrid_search_complete", candidates=len(rows), returned=min(len(items), limit))
        return items[:limit]

    async def full_text_search(
        self,
        keyword: str,
        filters: SearchFilters,
        limit: int | None = None,
    ) -> list[RetrievedItem]:
        """Full-text rank only; used without an embedding and as the fallback."""
        limit = limit or self._settings.hybrid_limit
        if not keyword.strip():
            return []

        clauses, params = self._scope_clauses(filters)
        clauses.append("search_vector @@ plainto_tsquery('simple', :keyword)")
        params.update({"keyword": keyword, "limit": limit})
        sql = (
            "SELECT id, source, external_id, type, content, metadata, "
            "social_content_created_at AS created_at, "
            "ts_rank(search_vector, plainto_tsquery('simple', :keyword)) AS rank "
            f"FROM {self._settings.content_table} "
            f"WHERE {' AND '.join(clauses)} "
            "ORDER BY rank DESC, social_content_created_at DESC NULLS LAST "
            "LIMIT :limit"
        )
        try:
            rows = await self._execute(sql, params)
        except Exception as exc:
            raise AdapterError(AdapterName.HYBRID, f"full-text search failed: {exc}") from exc

        items = [
            self._row_to_item(row, clamp_score(row.get("rank") or 0.0), {"match": "full_text"})
            for row in rows
        ]
        items = [item for item in items if item.text]
        items.sort(key=ranking_key)
        return items

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch_candidates(
        self,
        keyword: str,
        embedding: list[float],
        filters: SearchFilters,
        weights: HybridWeights,
        limit: int,
    ) -> list[Any]:
        exact, ordered = like_patterns(keyword)
        clauses, params = self._scope_clauses(filters)
        similarity = "1 - (embedding <=> CAST(:embedding AS vector))"
        exact_match = "content ILIKE :exact_pattern ESCAPE '\\'"
        ordered_match = "content ILIKE :ordered_pattern ESCAPE '\\'"
        clauses.append(
            f"({exact_match} OR {ordered_match} "
            f"OR (embedding IS NOT NULL AND {similarity} > :similarity_floor))"
        )
        params.update(
            {
                "embedding": _vector_literal(embedding),
                "exact_pattern": exact,
                "ordered_pattern": ordered,
                "similarity_floor": self._settings.candidate_similarity_floor,
                "keyword_weight": weights.keyword_weight,
                "vector_weight": weights.vector_weight,
                "limit": limit * 4,
            }
        )
        # The limit cuts on the same weighted score _score_row computes.
        sql = (
            "SELECT id, source, external_id, type, content, metadata, "
            "social_content_created_at AS created_at, similarity, "
            "keyword_tier * CAST(:keyword_weight AS double precision) "
            "+ similarity * CAST(:vector_weight AS double precision) AS relevance_score "
            "FROM ("
            "SELECT id, source, external_id, type, content, metadata, social_content_created_at, "
            f"CASE WHEN embedding IS NULL THEN 0 ELSE {similarity} END AS similarity, "
            f"CASE WHEN {exact_match} THEN {EXACT_TIER} "
            f"WHEN {ordered_match} THEN {ORDERED_WORDS_TIER} ELSE 0 END AS keyword_tier "
            f"FROM {self._settings.content_table} "
            f"WHERE {' AND '.join(clauses)}"
            ") AS candidates "
            "ORDER BY relevance_score DESC, social_content_created_at DESC NULLS LAST "
            "LIMIT :limit"
        )
        return await self._execute(sql, params)

    @staticmethod
    def _scope_clauses(filters: SearchFilters) -> tuple[list[str], dict[str, Any]]:
        clauses: list[str] = []
        params: dict[str, Any] = {}
        if filters.app_id is not None:
            clauses.append("app_id = :app_id")
            params["app_id"] = filters.app_id
        if filters.source_filter:
            clauses.append("source = ANY(:sources)")
            params["sources"] = list(filters.source_filter)
        return clauses or ["TRUE"], params

    async def _execute(self, sql: str, params: dict[str, Any]) -> list[Any]:
        from sqlalchemy import text

        async with self._session_factory() as session:
            result = await session.execute(text(sql), params)
            return list(result.mappings().all())

    def _score_row(self, row: Any, keyword: str, weights: HybridWeights) -> RetrievedItem:
        tier = keyword_tier(row.get("content") or "", keyword)
        similarity = clamp_score(row.get("similarity") or 0.0)
        score = tier * weights.keyword_weight + similarity * weights.vector_weight
        return self._row_to_item(
            row,
            clamp_score(score),
            {"keyword_tier": tier, "similarity": similarity},
        )

    @staticmethod
    def _row_to_item(row: Any, score: float, extra: dict[str, Any]) -> RetrievedItem:
        external = row.get("external_id")
        return RetrievedItem(
            source=AdapterName.HYBRID,
            external_ref=str(external) if external is not None else None,
            text=row.get("content") or "",
            score=score,
            created_at=as_utc(row.get("created_at")),
            metadata={**row_to_metadata(row), **extra},
        )

"""RetrievalOrchestrator: classify, fan out, merge.

Handles one query end to end:
1. Classify the query (falls back to the default analysis on any failure)
2. Short-circuit private / uncertainty queries to an empty result
3. Select adapters from intent, temporal window and source filter
4. Run them concurrently, each under its own timeout; failures are dropped
5. Post-filter vector/memory by source and window, boost recent items
   for recent_events
6. Deduplicate, rank, cap and calibrate confidence
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from src.query._models import DEFAULT_ANALYSIS, QueryIntent
from src.retrieval._exceptions import AdapterError, AdapterTimeoutError
from src.retrieval._merger import ResultMerger
from src.retrieval._models import (
    AdapterName,
    ConfidenceLevel,
    DateWindow,
    RetrievalResult,
    RetrievedItem,
    SearchFilters,
    as_utc,
)
from src.utils._logging import get_logger, request_context

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.embedding._embedder import QueryEmbedder
    from src.memory._adapter import LongTermMemoryAdapter
    from src.query._classifier import QueryClassifier
    from src.query._models import QueryAnalysis
    from src.retrieval._hybrid import HybridRelationalSearch
    from src.retrieval._models import RetrievalSettings
    from src.retrieval._temporal import TemporalRetriever
    from src.retrieval._vector import VectorSearchAdapter

_log = get_logger(__name__)

_TEMPORAL_INTENTS = frozenset({QueryIntent.RECENT_EVENTS, QueryIntent.HISTORICAL_TIMELINE})


class RetrievalOrchestrator:
    """Per-query strategy selection and concurrent fan-out over the stores.

    Every collaborator is injected; any store adapter may be ``None`` when
    that store is not configured, and is then never selected.
    """

    def __init__(
        self,
        settings: RetrievalSettings,
        classifier: QueryClassifier,
        *,
        embedder: QueryEmbedder | None = None,
        vector: VectorSearchAdapter | None = None,
        memory: LongTermMemoryAdapter | None = None,
        hybrid: HybridRelationalSearch | None = None,
        temporal: TemporalRetriever | None = None,
        merger: ResultMerger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._classifier = classifier
        self._embedder = embedder
        self._vector = vector
        self._memory = memory
        self._hybrid = hybrid
        self._temporal = temporal
        self._merger = merger or ResultMerger(settings)
        self._clock = clock or (lambda: datetime.now(UTC))

    # ------------------------------------------------------------------
    # Full retrieval
    # ------------------------------------------------------------------

    async def retrieve(self, query: str, user_id: str, app_id: str | None) -> RetrievalResult:
        """Retrieve persona content for *query*. Never raises except on cancellation."""
        with request_context(user_id=str(user_id), app_id=str(app_id) if app_id is not None else None):
            return await self._retrieve(query, str(user_id), str(app_id) if app_id is not None else None)

    async def _retrieve(self, query: str, user_id: str, app_id: str | None) -> RetrievalResult:
        result = RetrievalResult(query_text=query, started_at=datetime.now(UTC))

        # ---- Classify ----
        t0 = time.monotonic()
        try:
            analysis = await self._classifier.classify(query)
        except Exception as exc:
            _log.warning("classifier_raised_using_default", error=str(exc))
            result.errors.append(f"classifier: {exc}")
            analysis = DEFAULT_ANALYSIS
        result.timings["classify_ms"] = (time.monotonic() - t0) * 1000
        result.query_analysis = analysis
        result.requires_aggregation = analysis.requires_aggregation

        # ---- Private / uncertainty: nothing may be retrieved ----
        if analysis.suppresses_retrieval:
            _log.info(
                "retrieval_suppressed",
                intent=analysis.intent.value,
                requires_private_info=analysis.requires_private_info,
            )
            result.confidence_level = ConfidenceLevel.NONE
            result.finished_at = datetime.now(UTC)
            return result

        # ---- Fan out ----
        filters = SearchFilters(user_id=user_id, app_id=app_id, source_filter=analysis.source_filter)
        embedding_task: asyncio.Task[list[float]] | None = None
        if self._embedder is not None and (self._vector is not None or self._hybrid is not None):
            embedding_task = asyncio.create_task(self._embedder.embed(query))

        try:
            calls = self._plan(query, analysis, filters, embedding_task)
            outcomes = await asyncio.gather(
                *(self._run_adapter(name, call, query, app_id) for name, call in calls.items())
            )
        finally:
            if embedding_task is not None:
                if not embedding_task.done():
                    embedding_task.cancel()
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await embedding_task

        collected: dict[AdapterName, list[RetrievedItem]] = {}
        for name, items, error, elapsed_ms in outcomes:
            result.timings[f"{name}_ms"] = elapsed_ms
            if error is not None:
                result.errors.append(error)
                continue
            collected[name] = items

        self._post_filter(collected, analysis)
        item_lists = list(collected.values())

        if analysis.intent == QueryIntent.RECENT_EVENTS:
            now = self._clock()
            item_lists = [[self._boost_recent(item, now) for item in items] for items in item_lists]

        # ---- Merge ----
        t0 = time.monotonic()
        outcome = self._merger.merge(
            item_lists,
            max_results=self._settings.max_results,
            confidence_required=analysis.confidence_required,
        )
        result.timings["merge_ms"] = (time.monotonic() - t0) * 1000

        result.items = outcome.items
        result.confidence_level = outcome.confidence_level
        result.total_results = len(outcome.items)
        contributed = {source for item in outcome.items for source in item.sources}
        result.sources_used = [name for name in AdapterName if name in contributed]
        result.finished_at = datetime.now(UTC)

        _log.info(
            "retrieval_complete",
            intent=analysis.intent.value,
            adapters=[str(name) for name in calls],
            sources_used=[str(s) for s in result.sources_used],
            items=result.total_results,
            confidence=result.confidence_level.value,
            errors=len(result.errors),
            elapsed_ms=round(result.elapsed_ms, 1),
        )
        return result

    # ------------------------------------------------------------------
    # Strategy selection
    # ------------------------------------------------------------------

    def _plan(
        self,
        query: str,
        analysis: QueryAnalysis,
        filters: SearchFilters,
        embedding_task: asyncio.Task[list[float]] | None,
    ) -> dict[AdapterName, Callable[[], Awaitable[list[RetrievedItem]]]]:
        """Map each selected adapter to a zero-argument coroutine factory."""
        calls: dict[AdapterName, Callable[[], Awaitable[list[RetrievedItem]]]] = {}

        if self._vector is not None and embedding_task is not None:
            vector = self._vector

            async def _vector_call() -> list[RetrievedItem]:
                embedding = await asyncio.shield(embedding_task)
                return await vector.query(embedding, filters)

            calls[AdapterName.VECTOR] = _vector_call

        if self._memory is not None and filters.user_id:
            memory = self._memory
            user_id = filters.user_id

            async def _memory_call() -> list[RetrievedItem]:
                return await memory.search(query, user_id, filters.app_id)

            calls[AdapterName.MEMORY] = _memory_call

        temporal_constraint = analysis.temporal_constraint
        if (
            self._temporal is not None
            and analysis.intent in _TEMPORAL_INTENTS
            and temporal_constraint is not None
            and temporal_constraint.has_window
        ):
            temporal = self._temporal
            window = DateWindow(start=temporal_constraint.start_date, end=temporal_constraint.end_date)

            async def _temporal_call() -> list[RetrievedItem]:
                return await temporal.fetch(filters.app_id, window, analysis.source_filter or None)

            calls[AdapterName.TEMPORAL] = _temporal_call

        if self._hybrid is not None and (
            analysis.source_filter or analysis.intent == QueryIntent.CONTENT_SEARCH
        ):
            hybrid = self._hybrid

            async def _hybrid_call() -> list[RetrievedItem]:
                embedding: list[float] | None = None
                if embedding_task is not None:
                    try:
                        embedding = await asyncio.shield(embedding_task)
                    except Exception as exc:
                        _log.warning("hybrid_without_embedding", error=str(exc))
                return await hybrid.search(query, embedding, filters, self._settings.hybrid_weights)

            calls[AdapterName.HYBRID] = _hybrid_call

        return calls

    async def _run_adapter(
        self,
        name: AdapterName,
        call: Callable[[], Awaitable[list[RetrievedItem]]],
        query: str,
        app_id: str | None,
    ) -> tuple[AdapterName, list[RetrievedItem], str | None, float]:
        """Run one adapter under the per-call timeout; failures become an error line."""
        timeout = self._settings.adapter_timeout_seconds
        t0 = time.monotonic()
        error: str | None = None
        items: list[RetrievedItem] = []
        try:
            async with asyncio.timeout(timeout):
                items = await call()
        except TimeoutError:
            _log.warning(
                "adapter_timed_out",
                adapter=str(name),
                query=query[:100],
                app_id=app_id,
                timeout_s=timeout,
            )
            error = str(AdapterTimeoutError(name, timeout))
        except Exception as exc:
            _log.warning(
                "adapter_failed",
                adapter=str(name),
                query=query[:100],
                app_id=app_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            error = str(exc) if isinstance(exc, AdapterError) else f"{name}: {exc}"
        return name, items, error, (time.monotonic() - t0) * 1000

    # ------------------------------------------------------------------
    # Post-filters
    # ------------------------------------------------------------------

    @staticmethod
    def _post_filter(
        collected: dict[AdapterName, list[RetrievedItem]],
        analysis: QueryAnalysis,
    ) -> None:
        """Narrow vector and memory results in place.

        The relational adapters already apply the source filter and the
        window in SQL.  Vector and memory results are restricted to the
        source filter by ``metadata.source``, then to the analysis window
        (undated items dropped).  If the window would leave none of them,
        the source-filtered items are kept instead.
        """
        names = [name for name in (AdapterName.VECTOR, AdapterName.MEMORY) if name in collected]
        if not names:
            return

        if analysis.source_filter:
            for name in names:
                collected[name] = _filter_by_source(collected[name], analysis.source_filter)

        tc = analysis.temporal_constraint
        if tc is None or not tc.has_window:
            return
        windowed = {
            name: _filter_by_window(collected[name], tc.start_date, tc.end_date) for name in names
        }
        before = sum(len(collected[name]) for name in names)
        after = sum(len(items) for items in windowed.values())
        if after == 0 and before > 0:
            _log.info("window_filter_fallback", kept=before)
            return
        if after != before:
            _log.debug("window_filter_applied", before=before, after=after)
        collected.update(windowed)

    def _boost_recent(self, item: RetrievedItem, now: datetime) -> RetrievedItem:
        created = as_utc(item.created_at)
        if created is None:
            return item
        age = now - created
        if age <= timedelta(days=7):
            factor = self._settings.recent_boost_week
        elif age <= timedelta(days=30):
            factor = self._settings.recent_boost_month
        else:
            return item
        return item.model_copy(update={"score": min(item.score * factor, 1.0)})

    async def aclose(self) -> None:
        """Close the HTTP and store clients owned by the adapters."""
        for component in (self._embedder, self._vector, self._memory):
            closer: Any = getattr(component, "aclose", None)
            if closer is not None:
                await closer()


def _filter_by_source(items: list[RetrievedItem], source_filter: list[str]) -> list[RetrievedItem]:
    allowed = {s.lower() for s in source_filter}
    return [item for item in items if str(item.metadata.get("source", "")).lower() in allowed]


def _filter_by_window(items: list[RetrievedItem], start: datetime, end: datetime) -> list[RetrievedItem]:
    start, end = as_utc(start), as_utc(end)
    kept = []
    for item in items:
        created = as_utc(item.created_at)
        if created is not None and start <= created <= end:
            kept.append(item)
    return kept

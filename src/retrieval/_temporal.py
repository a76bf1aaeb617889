"""Time-window retrieval over the content table, newest first."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from src.retrieval._database import row_to_metadata
from src.retrieval._exceptions import AdapterError
from src.retrieval._models import AdapterName, RetrievedItem, as_utc
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.retrieval._models import DateWindow, RetrievalSettings

_log = get_logger(__name__)

UNDATED_SCORE = 0.5


def recency_multiplier(created_at: datetime | None, now: datetime) -> float:
    """Recency weight in [1.0, 2.0].

    Decays linearly from 2.0 to 1.5 over the first 7 days, from 1.5 to 1.2
    between 7 and 30 days, and is 1.0 afterwards.  Future timestamps count
    as brand new.
    """
    if created_at is None:
        return 1.0
    age_days = max((now - created_at).total_seconds() / 86400, 0.0)
    if age_days <= 7:
        return 2.0 - 0.5 * (age_days / 7)
    if age_days <= 30:
        return 1.5 - 0.3 * ((age_days - 7) / 23)
    return 1.0


class TemporalRetriever:
    """Fetches content created inside a window; undated rows are kept and sort last."""

    def __init__(
        self,
        settings: RetrievalSettings,
        session_factory: Any,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(UTC))

    async def fetch(
        self,
        app_id: str | None,
        window: DateWindow,
        source_filter: list[str] | None = None,
        limit: int | None = None,
    ) -> list[RetrievedItem]:
        """Return items in ``[window.start, window.end]`` plus undated rows.

        Ordered by created_at descending; rows without a timestamp follow
        every timestamped row.
        """
        limit = limit or self._settings.temporal_limit
        clauses = [
            "(social_content_created_at IS NULL "
            "OR social_content_created_at BETWEEN :start AND :end)",
        ]
        params: dict[str, Any] = {"start": window.start, "end": window.end, "limit": limit}
        if app_id is not None:
            clauses.append("app_id = :app_id")
            params["app_id"] = app_id
        if source_filter:
            clauses.append("source = ANY(:sources)")
            params["sources"] = list(source_filter)

        sql = (
            "SELECT id, source, external_id, type, content, metadata, "
            "social_content_created_at AS created_at "
            f"FROM {self._settings.content_table} "
            f"WHERE {' AND '.join(clauses)} "
            "ORDER BY social_content_created_at DESC NULLS LAST "
            "LIMIT :limit"
        )
        try:
            from sqlalchemy import text

            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                rows = list(result.mappings().all())
        except Exception as exc:
            raise AdapterError(AdapterName.TEMPORAL, f"window query failed: {exc}") from exc

        now = self._clock()
        items = [self._row_to_item(row, now) for row in rows]
        items = [item for item in items if item.text]
        # Driver rows may mix naive and aware timestamps.
        items.sort(key=_newest_first)
        _log.debug(
            "temporal_fetch_complete",
            app_id=app_id,
            start=window.start.isoformat(),
            end=window.end.isoformat(),
            returned=len(items),
        )
        return items

    @staticmethod
    def _row_to_item(row: Any, now: datetime) -> RetrievedItem:
        created = as_utc(row.get("created_at"))
        score = UNDATED_SCORE if created is None else recency_multiplier(created, now) / 2
        external = row.get("external_id")
        return RetrievedItem(
            source=AdapterName.TEMPORAL,
            external_ref=str(external) if external is not None else None,
            text=row.get("content") or "",
            score=score,
            created_at=created,
            metadata=row_to_metadata(row),
        )


def _newest_first(item: RetrievedItem) -> tuple[int, float]:
    if item.created_at is None:
        return (1, 0.0)
    return (0, -item.created_at.timestamp())

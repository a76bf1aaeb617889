"""Client for the external long-term memory service (mem0 REST API).

``user_id`` is the required top-level scope of every call.  When an app id
is given, search uses the v2 endpoint with an ``AND`` metadata filter on
``app_id``; otherwise the plain v1 search scoped by user.

Reads retry 3 times and ingestion writes 8 times, both with exponential
backoff plus jitter, and only for retryable failures (see
:func:`src.utils._retry.is_retryable_error`).
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from src.memory._exceptions import MemoryServiceError
from src.memory._models import MemoryRecord
from src.retrieval._models import AdapterName, RetrievedItem, clamp_score
from src.utils._exceptions import RetryableTransportError
from src.utils._logging import get_logger
from src.utils._retry import INGEST_PATH_ATTEMPTS, READ_PATH_ATTEMPTS, retry_with_backoff

if TYPE_CHECKING:
    from src.memory._models import MemorySettings

_log = get_logger(__name__)


def _parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _record_to_item(record: MemoryRecord) -> RetrievedItem:
    metadata = dict(record.metadata or {})
    # metadata.timestamp is when the original content was created; the
    # record's own created_at is when it was ingested
    created_at = _parse_timestamp(metadata.get("timestamp")) or _parse_timestamp(record.created_at)
    return RetrievedItem(
        source=AdapterName.MEMORY,
        external_ref=record.id,
        text=record.memory,
        score=clamp_score(record.score or 0.0),
        created_at=created_at,
        metadata=metadata,
    )


class LongTermMemoryAdapter:
    """Search and ingest persona memories; one HTTP client per process."""

    def __init__(
        self,
        settings: MemorySettings,
        client: httpx.AsyncClient | None = None,
        api_key: str | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._api_key = api_key if api_key is not None else os.environ.get(settings.api_key_env, "")

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def search(
        self,
        query: str,
        user_id: str,
        app_id: str | None = None,
    ) -> list[RetrievedItem]:
        """Return memories above ``min_score``, best first.

        Without an API key this logs a warning and returns ``[]``.

        Raises:
            MemoryServiceError: A non-retryable failure, or retries exhausted.
        """
        if not self.is_configured:
            _log.warning("memory_service_not_configured", env_var=self._settings.api_key_env)
            return []

        if app_id is not None:
            path = "/v2/memories/search/"
            payload: dict[str, Any] = {
                "query": query,
                "user_id": str(user_id),
                "filters": {"AND": [{"metadata": {"app_id": str(app_id)}}]},
            }
        else:
            path = "/v1/memories/search/"
            payload = {"query": query, "user_id": str(user_id)}

        data = await self._call(
            path,
            payload,
            operation="memory_search",
            attempts=READ_PATH_ATTEMPTS,
            base_delay=self._settings.search_base_delay,
        )
        raw = data.get("results", []) if isinstance(data, dict) else data
        records = [MemoryRecord.model_validate(entry) for entry in raw or [] if isinstance(entry, dict)]

        items = [
            _record_to_item(record)
            for record in records
            if record.memory.strip() and (record.score or 0.0) > self._settings.min_score
        ]
        items.sort(key=lambda item: item.score, reverse=True)
        _log.info(
            "memory_search_complete",
            user_id=user_id,
            app_id=app_id,
            found=len(records),
            kept=len(items),
        )
        return items

    async def add(
        self,
        text: str,
        user_id: str,
        app_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> Any:
        """Ingest *text* as a memory for *user_id*, tagged with *app_id*.

        Uses the ingestion retry policy (8 attempts, longer base delay).

        Raises:
            MemoryServiceError: Not configured, a non-retryable failure, or
                retries exhausted.
        """
        if not self.is_configured:
            msg = f"{self._settings.api_key_env} is not set; cannot ingest memories"
            raise MemoryServiceError(msg)

        now = datetime.now(UTC).isoformat()
        payload = {
            "messages": [{"role": "user", "content": text}],
            "user_id": str(user_id),
            "agent_id": str(app_id),
            "async_mode": False,
            "metadata": {
                "timestamp": now,
                **(metadata or {}),
                "app_id": str(app_id),
                "ingested_at": now,
            },
        }
        result = await self._call(
            "/v1/memories/",
            payload,
            operation="memory_add",
            attempts=INGEST_PATH_ATTEMPTS,
            base_delay=self._settings.ingest_base_delay,
        )
        _log.info("memory_ingested", user_id=user_id, app_id=app_id, chars=len(text))
        return result

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
                headers={
                    "Authorization": f"Token {self._api_key}",
                    "Content-Type": "application/json",
                },
            )
            _log.info("memory_client_initialized", base_url=self._settings.base_url)
        return self._client

    async def _call(
        self,
        path: str,
        payload: dict[str, Any],
        *,
        operation: str,
        attempts: int,
        base_delay: float,
    ) -> Any:
        client = self._ensure_client()

        async def _post() -> Any:
            resp = await client.post(path, json=payload)
            if resp.status_code >= 500 or resp.status_code == 429:
                msg = f"{resp.status_code} {resp.reason_phrase}: {resp.text[:200]}"
                raise RetryableTransportError(msg, status=resp.status_code)
            if resp.is_error:
                msg = f"memory service returned {resp.status_code}: {resp.text[:200]}"
                raise MemoryServiceError(msg, status=resp.status_code)
            return resp.json()

        try:
            return await retry_with_backoff(
                _post,
                operation=operation,
                attempts=attempts,
                base_delay=base_delay,
                max_delay=self._settings.max_delay,
            )
        except MemoryServiceError:
            raise
        except (httpx.HTTPError, RetryableTransportError, ValueError) as exc:
            _log.error("memory_call_failed", operation=operation, error=str(exc))
            status = exc.status if isinstance(exc, RetryableTransportError) else None
            msg = f"{operation} failed: {exc}"
            raise MemoryServiceError(msg, status=status) from exc

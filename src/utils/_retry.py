"""Bounded retry with exponential backoff and jitter for remote services.

Only transport-level and server-side failures are retried; everything else
propagates on the first attempt.  Attempt counts differ by call path:
reads give up quickly so the orchestrator's per-call timeout is not eaten
by retries, ingestion writes are allowed to persist longer.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from src.utils._exceptions import RetryableTransportError
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_log = get_logger(__name__)

T = TypeVar("T")

READ_PATH_ATTEMPTS = 3
INGEST_PATH_ATTEMPTS = 8

_CONNECT_ERROR_CODES = frozenset(
    {
        "ECONNREFUSED",
        "ENOTFOUND",
        "ETIMEDOUT",
        "UND_ERR_CONNECT_TIMEOUT",
    }
)

_GATEWAY_MESSAGES = (
    "502 bad gateway",
    "503 service unavailable",
    "504 gateway time-out",
    "504 gateway timeout",
)


def _status_of(exc: BaseException) -> int | None:
    if isinstance(exc, RetryableTransportError):
        return exc.status
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def is_retryable_error(exc: BaseException) -> bool:
    """Return True if *exc* is worth retrying against a remote service.

    Retryable: connection refused / timeouts, connect-timeout error codes
    (also when nested in ``__cause__``), generic transport failures,
    HTTP 5xx, HTTP 429 and HTML gateway error pages.
    """
    if isinstance(exc, httpx.TransportError | ConnectionError | TimeoutError):
        return True

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in _CONNECT_ERROR_CODES:
        return True
    cause = exc.__cause__
    cause_code = getattr(cause, "code", None)
    if isinstance(cause_code, str) and cause_code in _CONNECT_ERROR_CODES:
        return True

    message = str(exc).lower()
    if "fetch failed" in message:
        return True

    status = _status_of(exc)
    if status is not None and (500 <= status <= 599 or status == 429):
        return True

    return any(marker in message for marker in _GATEWAY_MESSAGES)


def _log_retry(operation: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        _log.warning(
            "retrying_remote_call",
            operation=operation,
            attempt=state.attempt_number,
            sleep_seconds=round(state.next_action.sleep, 2) if state.next_action else 0.0,
            error=str(exc),
        )

    return _before_sleep


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    operation: str,
    attempts: int = READ_PATH_ATTEMPTS,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
) -> T:
    """Await ``fn()`` with bounded exponential backoff plus random jitter.

    The delay before retry *n* is ``base_delay * 2**(n-1)`` plus up to
    ``base_delay`` seconds of jitter, capped at ``max_delay``.  The last
    exception is re-raised unchanged when attempts are exhausted or the
    predicate rejects it.  Cancellation is never retried.
    """

    def _predicate(exc: BaseException) -> bool:
        if isinstance(exc, asyncio.CancelledError):
            return False
        return should_retry(exc)

    retrying: Any = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=base_delay, max=max_delay, jitter=base_delay),
        retry=retry_if_exception(_predicate),
        before_sleep=_log_retry(operation),
        reraise=True,
    )
    return await retrying(fn)

"""Async SQLAlchemy engine and session factory for the content table."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from src.retrieval._exceptions import SearchNotAvailableError
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from src.retrieval._models import RetrievalSettings

_log = get_logger(__name__)


def resolve_database_url(settings: RetrievalSettings) -> str:
    """DATABASE_URL wins over the configured URL; plain postgres URLs get asyncpg."""
    url = os.environ.get("DATABASE_URL") or settings.database_url
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix) :]
    return url


def create_session_factory(settings: RetrievalSettings) -> Any:
    """Create the shared engine and return an ``async_sessionmaker``.

    Raises:
        SearchNotAvailableError: sqlalchemy (with asyncio support) or the
            asyncpg driver is not installed.
    """
    try:
        from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
    except ImportError as exc:
        msg = "sqlalchemy[asyncio] is required. Install with: pip install 'sqlalchemy[asyncio]' asyncpg"
        raise SearchNotAvailableError(msg) from exc

    url = resolve_database_url(settings)
    try:
        engine = create_async_engine(
            url,
            pool_size=settings.pool_size,
            max_overflow=settings.pool_size * 2,
            pool_pre_ping=True,
            pool_recycle=300,
        )
    except ImportError as exc:
        msg = f"Database driver for {url.split('://', 1)[0]} is not installed: {exc}"
        raise SearchNotAvailableError(msg) from exc

    _log.info("database_engine_created", pool_size=settings.pool_size, table=settings.content_table)
    return async_sessionmaker(engine, expire_on_commit=False)


def row_to_metadata(row: Any) -> dict[str, Any]:
    """Collect the non-core columns of a content row into item metadata."""
    metadata = dict(row.get("metadata") or {})
    for key in ("source", "type"):
        if row.get(key) is not None:
            metadata.setdefault(key, row[key])
    if row.get("id") is not None:
        metadata.setdefault("row_id", row["id"])
    return metadata

"""Derive concrete date windows from the classifier's temporal output."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from src.query._models import RawTemporalConstraint, TemporalConstraint, TemporalType


def resolve_temporal_constraint(
    raw: RawTemporalConstraint,
    now: datetime,
) -> TemporalConstraint:
    """Turn a raw temporal constraint into one with start/end dates.

    Pure: the same ``raw`` and ``now`` always give the same window.

    - relative with ``recency_days``: ``end = now``, ``start = now - recency_days``,
      clamped to the earliest representable date
    - absolute with ``year_mentioned``: Jan 1 00:00 to Dec 31 23:59:59.999999 UTC
    - anything else: no window (type and recency are kept)
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    if raw.type == TemporalType.RELATIVE:
        if raw.recency_days:
            try:
                start = now - timedelta(days=raw.recency_days)
            except OverflowError:
                start = datetime.min.replace(tzinfo=UTC)
            return TemporalConstraint(
                type=raw.type,
                recency=raw.recency,
                recency_days=raw.recency_days,
                start_date=start,
                end_date=now,
            )
        return TemporalConstraint(type=raw.type, recency=raw.recency)

    if raw.year_mentioned:
        year = raw.year_mentioned
        if datetime.min.year <= year <= datetime.max.year:
            return TemporalConstraint(
                type=raw.type,
                recency=raw.recency,
                start_date=datetime(year, 1, 1, tzinfo=UTC),
                end_date=datetime(year, 12, 31, 23, 59, 59, 999999, tzinfo=UTC),
            )
    return TemporalConstraint(type=raw.type, recency=raw.recency)

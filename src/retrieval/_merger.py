"""Cross-source deduplication, ranking and confidence calibration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from src.query._models import ConfidenceRequirement
from src.retrieval._models import ConfidenceLevel, RetrievedItem, ranking_key
from src.utils._hashing import content_hash, normalize_text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from src.retrieval._models import RetrievalSettings


class MergeOutcome(BaseModel):
    items: list[RetrievedItem] = Field(default_factory=list)
    confidence_level: ConfidenceLevel = ConfidenceLevel.NONE


def dedup_key(item: RetrievedItem) -> str:
    """Items whose text differs only in case or whitespace share a key."""
    return content_hash(normalize_text(item.text))


class ResultMerger:
    """Collapses duplicate items from different adapters and ranks the rest.

    On a key collision the higher-scoring copy wins (the earlier one on a
    tie) and the ``sources`` of both copies are unioned.
    """

    def __init__(self, settings: RetrievalSettings) -> None:
        self._settings = settings

    def merge(
        self,
        item_lists: Iterable[list[RetrievedItem]],
        max_results: int | None = None,
        confidence_required: ConfidenceRequirement = ConfidenceRequirement.LOW,
    ) -> MergeOutcome:
        merged: dict[str, RetrievedItem] = {}
        for items in item_lists:
            for item in items:
                key = dedup_key(item)
                existing = merged.get(key)
                if existing is None:
                    merged[key] = item
                    continue
                winner, loser = (item, existing) if item.score > existing.score else (existing, item)
                sources = tuple(dict.fromkeys((*winner.sources, *loser.sources)))
                merged[key] = winner.model_copy(update={"sources": sources})

        ranked = sorted(merged.values(), key=ranking_key)
        if max_results is not None:
            ranked = ranked[:max_results]
        return MergeOutcome(items=ranked, confidence_level=self.confidence(ranked, confidence_required))

    def confidence(
        self,
        items: list[RetrievedItem],
        required: ConfidenceRequirement = ConfidenceRequirement.LOW,
    ) -> ConfidenceLevel:
        """Calibrate confidence from the best score and the number of items.

        Queries that require high confidence are held to the ``strict_*``
        thresholds.  Monotonic: more items or a higher best score never
        lowers the level.
        """
        if not items:
            return ConfidenceLevel.NONE
        s = self._settings
        if required == ConfidenceRequirement.HIGH:
            high = (s.strict_high_min_score, s.strict_high_min_count)
            medium = (s.strict_medium_min_score, s.strict_medium_min_count)
        else:
            high = (s.high_min_score, s.high_min_count)
            medium = (s.medium_min_score, s.medium_min_count)
        best = max(item.score for item in items)
        count = len(items)
        if best >= high[0] and count >= high[1]:
            return ConfidenceLevel.HIGH
        if best >= medium[0] and count >= medium[1]:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

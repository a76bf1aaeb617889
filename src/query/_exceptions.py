"""Exception hierarchy for query classification."""

from __future__ import annotations

from src.utils._exceptions import PersonaRAGError


class QueryClassificationError(PersonaRAGError):
    """Base exception for query classification."""


class ClassificationError(QueryClassificationError):
    """The structured-output call failed or returned unusable output.

    Always recovered inside :class:`QueryClassifier`; never surfaced.
    """

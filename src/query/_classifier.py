"""Query classifier: structured-output LLM call with a static fallback.

Maps raw query text to a :class:`QueryAnalysis`.  ``classify`` never raises
(except on cancellation): any provider, parsing or validation failure
returns :data:`DEFAULT_ANALYSIS`, so a classification problem can never
abort the user's conversation.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from src.query._exceptions import ClassificationError
from src.query._models import DEFAULT_ANALYSIS, QueryAnalysis, QuerySettings, RawQueryAnalysis
from src.query._temporal import resolve_temporal_constraint
from src.utils._llm_client import LLMMessage, get_llm_provider
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.utils._llm_client import BaseLLMProvider

_log = get_logger(__name__)

_SYSTEM_PROMPT = """\
You are a query classifier for a digital clone system. A user is chatting with \
a persona whose knowledge comes from their public posts, articles and stored \
memories. Analyse the user query and return a single JSON object.

1. intent (REQUIRED, exactly ONE):
   - "factual_lookup": specific facts, education, work history, projects, locations.
     e.g. "Where did you work?", "What's your degree in?"
   - "recent_events": recent activity or latest updates.
     e.g. "What did you post last week?", "What have you been up to lately?"
   - "historical_timeline": comparing time periods or tracking change over time.
     e.g. "How has your opinion on AI changed?", "Your stance in 2022 vs now?"
   - "personality_query": personality, values, what excites or motivates them.
     e.g. "What makes you excited?", "How would you describe yourself?"
   - "opinion_query": stance or viewpoint on a topic.
     e.g. "What's your take on remote work?"
   - "content_search": explicit requests to find content.
     e.g. "Find all posts about AI", "Show me articles on productivity"
   - "analytics_query": statistics, counts or aggregates.
     e.g. "What topics do you post about most?", "How many times mentioned AI?"
   - "casual_conversation": greetings and small talk.
     e.g. "Hey!", "How's it going?", "Good morning"
   - "uncertainty_test": private information that is not in public content.
     e.g. "What did you have for breakfast?", "What's your password?"
   - "story_request": narratives or experiences.
     e.g. "Tell me about a time when..."

2. entities (array of strings): 2-5 key topics or concepts; empty if none.

3. temporalConstraint (object or null):
   - type: "relative" (last week, recently) or "absolute" (in 2022)
   - recency: "recent" (last 30 days), "historical" (a past period) or "any"
   - recencyDays: number of days (7 for last week, 30 for last month, 365 for last year)
   - yearMentioned: a specific year if mentioned
   null when the query has no time constraint.

4. contentTypeFilter (array): content types if specified, e.g. ["post"], ["article", "comment"].

5. sourceFilter (array, lowercase): platforms mentioned, chosen from: {platforms}.

6. requiresAggregation (boolean): true for counts, statistics, "most", "top", "how many".

7. expectedAnswerType: "specific_facts", "opinions", "content_list", "summary" or "conversation".

8. confidenceRequired: "high" (factual), "medium" (opinions) or "low" (casual).

9. requiresPrivateInfo (boolean): true only for non-public personal information.

Return only the JSON object."""


def _parse_json(raw: str) -> Any:
    """Parse JSON from an LLM response, tolerating markdown code fences."""
    text = raw.strip()
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Classifier returned invalid JSON: {text[:200]!r}"
        raise ClassificationError(msg) from exc


class QueryClassifier:
    """Classify a query into intent, entities, filters and a date window."""

    def __init__(
        self,
        settings: QuerySettings,
        provider: BaseLLMProvider | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._provider = provider
        self._clock = clock or (lambda: datetime.now(UTC))
        self._system_prompt = _SYSTEM_PROMPT.format(
            platforms=", ".join(f'"{p}"' for p in settings.platforms),
        )

    async def classify(self, query: str) -> QueryAnalysis:
        """Classify *query*; returns the static default on any failure."""
        try:
            raw = await self._classify_raw(query)
            analysis = self.to_analysis(raw, now=self._clock())
        except Exception as exc:
            _log.warning(
                "classification_failed_using_default",
                query=query[:100],
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return DEFAULT_ANALYSIS

        _log.info(
            "query_classified",
            intent=analysis.intent.value,
            entities=analysis.entities,
            sources=analysis.source_filter,
            temporal=analysis.temporal_constraint.recency.value
            if analysis.temporal_constraint
            else None,
        )
        return analysis

    @staticmethod
    def to_analysis(raw: RawQueryAnalysis, *, now: datetime) -> QueryAnalysis:
        """Build the final analysis: derive dates and normalise filters."""
        temporal = (
            resolve_temporal_constraint(raw.temporal_constraint, now)
            if raw.temporal_constraint is not None
            else None
        )
        sources = list(dict.fromkeys(s.lower() for s in raw.source_filter))
        return QueryAnalysis(
            intent=raw.intent,
            entities=raw.entities,
            temporal_constraint=temporal,
            content_type_filter=[c.lower() for c in raw.content_type_filter],
            source_filter=sources,
            requires_aggregation=raw.requires_aggregation,
            expected_answer_type=raw.expected_answer_type,
            confidence_required=raw.confidence_required,
            requires_private_info=raw.requires_private_info,
        )

    async def _classify_raw(self, query: str) -> RawQueryAnalysis:
        provider = self._provider or get_llm_provider(self._settings.llm_component)
        async with asyncio.timeout(self._settings.timeout_seconds):
            response = await provider.acomplete(
                [LLMMessage(role="user", content=f'User query: "{query}"')],
                max_tokens=self._settings.max_tokens,
                temperature=self._settings.temperature,
                system=self._system_prompt,
                json_output=True,
            )

        parsed = _parse_json(response.text)
        if not isinstance(parsed, dict):
            msg = f"Classifier returned {type(parsed).__name__}, expected an object"
            raise ClassificationError(msg)
        try:
            return RawQueryAnalysis.model_validate(parsed)
        except PydanticValidationError as exc:
            msg = f"Classifier output failed validation: {exc}"
            raise ClassificationError(msg) from exc

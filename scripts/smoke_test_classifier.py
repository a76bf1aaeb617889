"""Live smoke test: classify a few queries against the configured LLM provider.

Exercises 3 paths end-to-end:
1. Provider factory + JSON-mode completion
2. QueryClassifier on a temporal query ("last week" -> 7-day window)
3. QueryClassifier on an uncertainty query (retrieval suppressed)

Requires: the provider routed for ``query_classifier`` in configs/llm.yaml
to be reachable (OPENAI_API_KEY for the default OpenAI routing).
"""

from __future__ import annotations

import asyncio
import json
import sys
import time


def _banner(title: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {title}")
    print(f"{'=' * 60}")


async def check_1_provider_factory() -> None:
    """get_llm_provider returns a provider that honours JSON mode."""
    _banner("Check 1: Provider Factory + JSON Completion")

    from src.utils._llm_client import LLMMessage, get_llm_provider

    t0 = time.perf_counter()
    provider = get_llm_provider("query_classifier")
    print(f"  Provider: {provider.provider_name} ({provider.model})")
    print(f"  Available: {provider.is_available}")

    response = await provider.acomplete(
        [LLMMessage(role="user", content='Return {"ok": true} and nothing else.')],
        max_tokens=32,
        temperature=0.0,
        json_output=True,
    )
    elapsed = time.perf_counter() - t0

    print(f"  Response ({elapsed:.1f}s): {response.text[:200]}")
    assert json.loads(response.text).get("ok") is True, "Expected a JSON object with ok=true"
    print("  PASSED")


async def check_2_temporal_query() -> None:
    """A 'last week' query classifies as recent_events with a 7-day window."""
    _banner("Check 2: Temporal Query")

    from src.query import QueryClassifier, QueryIntent
    from src.query._config import load_query_config

    classifier = QueryClassifier(load_query_config().settings)
    t0 = time.perf_counter()
    analysis = await classifier.classify("What did you post about AI last week?")
    elapsed = time.perf_counter() - t0

    print(f"  Intent: {analysis.intent.value}  Entities: {analysis.entities}")
    tc = analysis.temporal_constraint
    print(f"  Window: {tc.start_date if tc else None} -> {tc.end_date if tc else None}")
    print(f"  Elapsed: {elapsed:.1f}s")
    assert analysis.intent == QueryIntent.RECENT_EVENTS
    assert tc is not None and tc.recency_days == 7
    print("  PASSED")


async def check_3_uncertainty_query() -> None:
    """A private-information query suppresses retrieval."""
    _banner("Check 3: Uncertainty Query")

    from src.query import QueryClassifier
    from src.query._config import load_query_config

    classifier = QueryClassifier(load_query_config().settings)
    analysis = await classifier.classify("What did you have for breakfast this morning?")

    print(f"  Intent: {analysis.intent.value}  Private: {analysis.requires_private_info}")
    assert analysis.suppresses_retrieval, "Expected retrieval to be suppressed"
    print("  PASSED")


async def main() -> None:
    print("Persona Retrieval Core: Classifier Smoke Test")

    passed = 0
    failed = 0

    for check in (check_1_provider_factory, check_2_temporal_query, check_3_uncertainty_query):
        try:
            await check()
            passed += 1
        except Exception as e:
            print(f"  FAILED: {e}")
            failed += 1

    _banner(f"Results: {passed} passed, {failed} failed")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    asyncio.run(main())

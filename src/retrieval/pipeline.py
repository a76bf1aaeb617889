"""RetrievalPipeline: batch/interactive driver for the orchestrator.

Wraps RetrievalOrchestrator for CLI usage, batch evaluation, and
interactive mode.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING

from src.retrieval._factory import build_orchestrator
from src.retrieval._models import RetrievalResult
from src.utils._logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from src.retrieval._orchestrator import RetrievalOrchestrator

_log = get_logger(__name__)


class RetrievalPipeline:
    """Runs queries for one user/app through a RetrievalOrchestrator.

    Supports three modes:
    - Batch: process a list of queries or a JSON file
    - Interactive: read queries from stdin
    - Single: process one query
    """

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator | None = None,
        config_dir: Path | None = None,
    ) -> None:
        self._orchestrator = orchestrator or build_orchestrator(config_dir=config_dir)

    @property
    def orchestrator(self) -> RetrievalOrchestrator:
        return self._orchestrator

    async def run(
        self,
        *,
        user_id: str,
        app_id: str | None = None,
        queries: list[str] | None = None,
        queries_file: Path | None = None,
        interactive: bool = False,
        dry_run: bool = False,
    ) -> list[RetrievalResult]:
        """Run retrieval for one or more queries.

        Args:
            user_id: Memory-service scope for every query.
            app_id: Persona scope; None searches all of the user's content.
            queries: List of query texts.
            queries_file: Path to JSON file with query list.
            interactive: Read queries from stdin (one per line).
            dry_run: Only report what would be done; don't search.

        Returns:
            List of RetrievalResults, one per query.
        """
        query_texts = self._collect_queries(queries, queries_file, interactive)

        _log.info("pipeline_start", query_count=len(query_texts), dry_run=dry_run)

        if dry_run:
            _log.info("dry_run_complete", query_count=len(query_texts))
            return [RetrievalResult(query_text=qt) for qt in query_texts]

        results: list[RetrievalResult] = []
        try:
            for i, qt in enumerate(query_texts):
                _log.info("processing_query", index=i, text=qt[:80])
                try:
                    results.append(await self._orchestrator.retrieve(qt, user_id, app_id))
                except Exception as exc:
                    _log.error("query_failed", index=i, error=str(exc))
                    results.append(RetrievalResult(query_text=qt, errors=[str(exc)]))
        finally:
            await self._orchestrator.aclose()

        _log.info(
            "pipeline_complete",
            total=len(results),
            errors=sum(1 for r in results if r.errors),
        )
        return results

    @staticmethod
    def _collect_queries(
        queries: list[str] | None,
        queries_file: Path | None,
        interactive: bool,
    ) -> list[str]:
        """Gather query texts from all input sources."""
        result: list[str] = []

        if queries:
            result.extend(queries)

        if queries_file is not None:
            try:
                data = json.loads(queries_file.read_text(encoding="utf-8"))
                if isinstance(data, list):
                    result.extend(str(q) for q in data)
                elif isinstance(data, dict) and "queries" in data:
                    result.extend(str(q) for q in data["queries"])
                else:
                    _log.warning("unknown_queries_file_format", path=str(queries_file))
            except (OSError, json.JSONDecodeError) as exc:
                _log.error("queries_file_load_failed", path=str(queries_file), error=str(exc))

        if interactive:
            print("Enter queries (one per line, Ctrl+D to finish):")
            for line in sys.stdin:
                stripped = line.strip()
                if stripped:
                    result.append(stripped)

        return result

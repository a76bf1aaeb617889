"""CLI entry point: python -m src.retrieval.run

Usage:
    python -m src.retrieval.run --user-id 42 --app-id 7 --query "What did you post about AI last week?"
    python -m src.retrieval.run --user-id 42 --queries-file data/queries.json
    python -m src.retrieval.run --user-id 42 --interactive
    python -m src.retrieval.run --user-id 42 --query "Hey!" --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from src.retrieval.pipeline import RetrievalPipeline
from src.utils._logging import configure_logging, get_logger

_log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Persona Retrieval Orchestrator")
    parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Single query text to retrieve for.",
    )
    parser.add_argument(
        "--user-id",
        type=str,
        required=True,
        help="User the persona belongs to (memory-service scope).",
    )
    parser.add_argument(
        "--app-id",
        type=str,
        default=None,
        help="Persona app id; omit to search all of the user's content.",
    )
    parser.add_argument(
        "--queries-file",
        type=str,
        default=None,
        help="Path to JSON file with list of queries.",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Read queries from stdin (one per line).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be done without searching.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--console-log",
        action="store_true",
        help="Use human-readable console logging instead of JSON.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Directory holding retrieval/query/memory/embedding YAML configs.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the retrieval CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(log_level=args.log_level, json_output=not args.console_log)

    config_dir = Path(args.config) if args.config else None
    pipeline = RetrievalPipeline(config_dir=config_dir)

    queries = [args.query] if args.query else None
    queries_file = Path(args.queries_file) if args.queries_file else None

    results = asyncio.run(
        pipeline.run(
            user_id=args.user_id,
            app_id=args.app_id,
            queries=queries,
            queries_file=queries_file,
            interactive=args.interactive,
            dry_run=args.dry_run,
        )
    )

    for i, r in enumerate(results):
        status = "OK" if not r.errors else "ERRORS"
        elapsed = f"{r.elapsed_ms:.0f}ms" if r.finished_at else "N/A"
        print(
            f"[{i}] {status} | {r.query_analysis.intent.value} | {r.total_results} items | "
            f"confidence={r.confidence_level.value} | {elapsed} | {r.query_text[:60]}"
        )
        for item in r.items[:5]:
            print(f"     {item.score:.2f} [{','.join(item.sources)}] {item.text[:80]}")
        for err in r.errors:
            print(f"     ERROR: {err}")


if __name__ == "__main__":
    main()

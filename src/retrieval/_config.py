"""Load ``configs/retrieval.yaml`` into a RetrievalConfig.

The file holds a single ``settings:`` block covering the Qdrant collection,
the relational content table, per-adapter limits, orchestration timeouts
and confidence calibration.  Anything left out keeps its model default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from src.retrieval._models import RetrievalConfig, RetrievalSettings
from src.utils._exceptions import ConfigurationError
from src.utils._logging import get_logger

_log = get_logger(__name__)

_DEFAULT_CONFIG_PATH = Path("configs/retrieval.yaml")


def _read_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def _check_calibration(settings: RetrievalSettings, path: Path) -> None:
    """Each confidence tier must be at least as demanding as the one below it."""
    tiers = [
        ("medium", settings.medium_min_score, settings.medium_min_count),
        ("high", settings.high_min_score, settings.high_min_count),
        ("strict_medium", settings.strict_medium_min_score, settings.strict_medium_min_count),
        ("strict_high", settings.strict_high_min_score, settings.strict_high_min_count),
    ]
    pairs = [(tiers[0], tiers[1]), (tiers[2], tiers[3]), (tiers[0], tiers[2]), (tiers[1], tiers[3])]
    for (low_name, low_score, low_count), (high_name, high_score, high_count) in pairs:
        if high_score < low_score or high_count < low_count:
            msg = (
                f"Config validation failed for {path}: {high_name} thresholds "
                f"({high_score}, {high_count}) are below {low_name} ({low_score}, {low_count})"
            )
            raise ConfigurationError(msg)


def load_retrieval_config(config_path: Path | None = None) -> RetrievalConfig:
    """Read, validate and sanity-check the retrieval settings.

    Raises:
        ConfigurationError: Missing file, bad YAML, a field that fails
            validation, or confidence thresholds out of order.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    data = _read_mapping(path)

    try:
        config = RetrievalConfig.model_validate(data)
    except Exception as exc:
        raise ConfigurationError(f"Config validation failed for {path}: {exc}") from exc

    _check_calibration(config.settings, path)
    _log.debug(
        "retrieval_config_loaded",
        path=str(path),
        collection=config.settings.collection,
        content_table=config.settings.content_table,
    )
    return config

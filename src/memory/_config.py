"""Configuration loader for the memory service."""

from __future__ import annotations

from pathlib import Path

import yaml

from src.memory._models import MemoryConfig
from src.utils._exceptions import ConfigurationError

_DEFAULT_CONFIG_PATH = Path("configs/memory.yaml")


def load_memory_config(config_path: Path | None = None) -> MemoryConfig:
    """Load and validate the memory service config from a YAML file.

    Args:
        config_path: Path to the YAML config. Defaults to configs/memory.yaml.

    Returns:
        Validated MemoryConfig model.

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid.
    """
    path = config_path or _DEFAULT_CONFIG_PATH

    if not path.exists():
        msg = f"Config file not found: {path}"
        raise ConfigurationError(msg)

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in {path}: {exc}"
        raise ConfigurationError(msg) from exc

    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {path}, got {type(data).__name__}"
        raise ConfigurationError(msg)

    try:
        return MemoryConfig.model_validate(data)
    except Exception as exc:
        msg = f"Config validation failed for {path}: {exc}"
        raise ConfigurationError(msg) from exc

"""Tests for query classification config loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.query._config import load_query_config
from src.query._models import QueryConfig
from src.utils._exceptions import ConfigurationError


class TestLoadQueryConfig:
    """Tests for load_query_config()."""

    def test_load_default_config(self) -> None:
        """Load the actual configs/query.yaml file."""
        config = load_query_config(Path("configs/query.yaml"))
        assert isinstance(config, QueryConfig)
        assert config.settings.llm_component == "query_classifier"
        assert "linkedin" in config.settings.platforms

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_query_config(tmp_path / "nonexistent.yaml")

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.yaml"
        bad_file.write_text("{{invalid yaml::", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_query_config(bad_file)

    def test_non_dict_yaml_raises(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "list.yaml"
        bad_file.write_text("- item1\n- item2\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Expected a YAML mapping"):
            load_query_config(bad_file)

    def test_partial_settings_merges_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "query.yaml"
        config_file.write_text("settings:\n  timeout_seconds: 3.5\n", encoding="utf-8")
        config = load_query_config(config_file)
        assert config.settings.timeout_seconds == 3.5
        assert config.settings.max_tokens == 512  # default preserved

    def test_validation_error_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "query.yaml"
        config_file.write_text("settings:\n  max_tokens: lots\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Config validation failed"):
            load_query_config(config_file)

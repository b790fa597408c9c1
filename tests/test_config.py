"""Tests for reporting config loading."""

from unittest.mock import patch

import pytest

from scripts.lib.config import DEFAULT_CONFIG, load_reporting_config
from scripts.lib.errors import ConfigError


class TestLoadReportingConfig:
    def test_defaults_when_env_file_missing(self, tmp_path):
        with patch.dict("os.environ", {"REPORTING_CONFIG_PATH": str(tmp_path / "absent.yaml")}):
            config = load_reporting_config()
        assert config == DEFAULT_CONFIG
        assert config.dedup_proximity_seconds == 60
        assert config.weekly_defaults.calls == 10

    def test_reporting_section_overrides(self, tmp_path):
        path = tmp_path / "reporting.yaml"
        path.write_text(
            "reporting:\n"
            "  dedup_proximity_seconds: 120\n"
            "  action_thresholds:\n"
            "    min_weekly_calls: 50\n",
            encoding="utf-8",
        )
        config = load_reporting_config(path)
        assert config.dedup_proximity_seconds == 120
        assert config.action_thresholds.min_weekly_calls == 50
        assert config.action_thresholds.min_upcoming_calls_next_week == 30
        assert config.sale_keywords == DEFAULT_CONFIG.sale_keywords

    def test_env_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("active_window_days: 14\n", encoding="utf-8")
        with patch.dict("os.environ", {"REPORTING_CONFIG_PATH": str(path)}):
            assert load_reporting_config().active_window_days == 14

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_reporting_config(path) == DEFAULT_CONFIG

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(ConfigError):
            load_reporting_config(tmp_path / "nope.yaml")

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("reporting: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError) as exc:
            load_reporting_config(path)
        assert exc.value.code == "CONFIG_ERROR"

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("reporting:\n  dedup_proximity_seconds: -5\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_reporting_config(path)

    def test_section_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_reporting_config(path)

    def test_shipped_config_matches_defaults(self):
        assert load_reporting_config() == DEFAULT_CONFIG

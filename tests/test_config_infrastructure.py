"""
Tests for the config loader.

Covers file-level failures (missing, empty, malformed) and value
validation surfacing as ConfigurationError.
"""

import json
from pathlib import Path

import pytest

from alerttracker.domain.config import SmtpSettings
from alerttracker.domain.errors import ConfigurationError
from alerttracker.infrastructure.config_loader import ConfigLoader, parse_tracker_config


class TestConfigLoader:
    """Test cases for ConfigLoader."""

    @pytest.fixture
    def loader(self, tmp_path):
        return ConfigLoader(tmp_path)

    def _write(self, tmp_path, content, name="tracker_config.json"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_load_success(self, loader, tmp_path):
        """Test a valid file loads into TrackerConfig."""
        self._write(
            tmp_path,
            json.dumps({"source_path": "shared/alerts.xlsx", "enable_writeback": True}),
        )
        config = loader.load_tracker_config()
        assert config.source_path == "shared/alerts.xlsx"
        assert config.enable_writeback is True

    def test_file_not_found(self, loader):
        """Test a missing file names the path and the example hint."""
        with pytest.raises(ConfigurationError, match="not found.*\n.*example"):
            loader.load_tracker_config()

    def test_empty_file(self, loader, tmp_path):
        self._write(tmp_path, "  \n")
        with pytest.raises(ConfigurationError, match="empty"):
            loader.load_tracker_config()

    def test_invalid_json(self, loader, tmp_path):
        """Test malformed JSON reports line and column."""
        self._write(tmp_path, '{\n  "source_path": "a.xlsx",\n}')
        with pytest.raises(ConfigurationError, match="line 3"):
            loader.load_tracker_config()

    def test_root_must_be_object(self, loader, tmp_path):
        self._write(tmp_path, "[1, 2]")
        with pytest.raises(ConfigurationError, match="JSON object"):
            loader.load_tracker_config()

    def test_invalid_value(self, loader, tmp_path):
        """Test pydantic errors are translated with the field name."""
        self._write(tmp_path, json.dumps({"source_path": "alerts.csv"}))
        with pytest.raises(ConfigurationError, match="source_path"):
            loader.load_tracker_config()

    def test_missing_source_path(self, loader, tmp_path):
        self._write(tmp_path, json.dumps({"source_tab": "Alerts"}))
        with pytest.raises(ConfigurationError, match="source_path"):
            loader.load_tracker_config()

    def test_explicit_path_outside_config_dir(self, loader, tmp_path):
        """Test a path with a directory part is used as given."""
        other = tmp_path / "elsewhere"
        other.mkdir()
        path = self._write(other, json.dumps({"source_path": "a.xlsx"}), "custom.json")
        assert loader.load_tracker_config(str(path)).source_path == "a.xlsx"

    def test_notification_settings_survive_invalid_config(self, loader, tmp_path):
        """Test error_email and smtp are still read when validation fails."""
        self._write(
            tmp_path,
            json.dumps(
                {
                    "source_path": "alerts.csv",
                    "error_email": "ops@example.com",
                    "smtp": {"host": "smtp.example.com", "port": 25},
                }
            ),
        )
        error_email, smtp = loader.load_notification_settings()
        assert error_email == "ops@example.com"
        assert smtp.host == "smtp.example.com"
        assert smtp.port == 25

    def test_notification_settings_never_raise(self, loader, tmp_path):
        assert loader.load_notification_settings() == (None, SmtpSettings())
        self._write(tmp_path, json.dumps({"error_email": 5, "smtp": {"port": "x"}}))
        error_email, smtp = loader.load_notification_settings()
        assert error_email is None
        assert smtp.is_configured is False


def test_parse_tracker_config_collects_all_problems():
    with pytest.raises(ConfigurationError) as exc:
        parse_tracker_config({"source_path": "", "timezone": "Nowhere/City"}, source="inline")
    message = str(exc.value)
    assert "inline" in message
    assert "source_path" in message
    assert "timezone" in message


def test_example_config_is_valid():
    example = Path(__file__).resolve().parents[1] / "config" / "tracker_config.example.json"
    config = ConfigLoader(example.parent).load_tracker_config(example.name)
    assert config.enable_writeback is False
    assert config.smtp.is_configured

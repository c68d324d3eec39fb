"""
Configuration loader module.

Loads config/tracker_config.json and validates it into TrackerConfig.
"""

import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from alerttracker.domain.config import SmtpSettings, TrackerConfig
from alerttracker.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "tracker_config.json"


class ConfigLoader:
    """
    Load and validate configuration files.

    Every failure surfaces as ConfigurationError with a hint for the operator.
    """

    def __init__(self, config_dir: str | Path = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing configuration files. A relative
                        default is anchored to the executable when frozen.
        """
        if getattr(sys, "frozen", False) and not Path(config_dir).is_absolute():
            self.config_dir = Path(sys.executable).parent / config_dir
        else:
            self.config_dir = Path(config_dir)

        logger.debug("ConfigLoader initialized with directory: %s", self.config_dir)

    def _load_json_file(self, filepath: Path) -> dict:
        """
        Load and parse a JSON file with robust error handling.

        Raises:
            ConfigurationError: missing, unreadable, empty or malformed file
        """
        if not filepath.exists():
            raise ConfigurationError(
                f"Configuration file not found: {filepath}\n"
                f"Hint: Copy the .example.json file and customize it."
            )

        try:
            content = filepath.read_text(encoding="utf-8")
        except PermissionError as e:
            raise ConfigurationError(
                f"Cannot read config file (permission denied): {filepath}\n"
                f"Hint: Check file permissions or if another process has it locked."
            ) from e

        if not content.strip():
            raise ConfigurationError(
                f"Configuration file is empty: {filepath}\n"
                f"Hint: Add valid JSON content or copy from .example.json"
            )

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {filepath}\n"
                f"Error at line {e.lineno}, column {e.colno}: {e.msg}\n"
                f"Hint: Validate JSON syntax. Note: .json files cannot have comments."
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be a JSON object: {filepath}")
        return data

    def load_tracker_config(self, filename: str = DEFAULT_CONFIG_FILE) -> TrackerConfig:
        """
        Load the tracker configuration.

        Raises:
            ConfigurationError: file problems or invalid values
        """
        filepath = self._resolve(filename)
        data = self._load_json_file(filepath)
        return parse_tracker_config(data, source=str(filepath))

    def load_notification_settings(
        self, filename: str = DEFAULT_CONFIG_FILE
    ) -> tuple[str | None, SmtpSettings]:
        """
        Best-effort error_email and smtp from a config that failed to load.

        Lets configuration errors still reach the operator. Never raises;
        unreadable parts fall back to no address or default SMTP settings.
        """
        try:
            data = self._load_json_file(self._resolve(filename))
        except ConfigurationError as e:
            logger.debug("No notification settings available: %s", e)
            return None, SmtpSettings()

        error_email = data.get("error_email")
        if not isinstance(error_email, str):
            error_email = None
        try:
            smtp = SmtpSettings.model_validate(data.get("smtp") or {})
        except ValidationError as e:
            logger.warning("Ignoring invalid smtp settings: %s", e)
            smtp = SmtpSettings()
        return error_email, smtp

    def _resolve(self, filename: str) -> Path:
        filepath = Path(filename)
        if not filepath.is_absolute() and filepath.parent == Path("."):
            filepath = self.config_dir / filename
        return filepath


def parse_tracker_config(data: dict, source: str = "<dict>") -> TrackerConfig:
    """Validate a raw mapping, translating pydantic errors to ConfigurationError."""
    try:
        config = TrackerConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration in {source}: {problems}") from e

    if not config.enable_writeback:
        logger.debug("Writeback disabled (enable_writeback is unset or false)")
    logger.info("Loaded config: source=%s tab=%s", config.source_path, config.source_tab)
    return config

"""JSON configuration persistence."""

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

from subminer.exceptions import ConfigurationError

from .config import SubMinerConfig
from .defaults import create_default_config

logger = logging.getLogger(__name__)


class ConfigManager:
    """Load and save the user configuration.

    The configuration lives in a JSON file in the user's home directory.
    Unknown keys are ignored and invalid files fall back to the defaults,
    so a stale config never prevents the integration from starting.
    """

    CONFIG_FILE = Path.home() / ".subminer" / "config.json"

    def __init__(self, config_file: Path | None = None):
        """Initialize the manager.

        Args:
            config_file: Optional override of the config file location
        """
        self.config_file = config_file or self.CONFIG_FILE

    def save_config(self, config: SubMinerConfig) -> None:
        """Save configuration to JSON file.

        Args:
            config: Configuration to save

        Raises:
            OSError: If unable to create directory or write file
        """
        self.config_file.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self._paths_to_strings(asdict(config))

        with self.config_file.open("w", encoding="utf-8") as f:
            json.dump(config_dict, f, indent=2, ensure_ascii=False)

    def load_config(self, **overrides) -> SubMinerConfig:
        """Load configuration from JSON file.

        Args:
            **overrides: Values that take precedence over the file (CLI flags)

        Returns:
            Loaded configuration, or default configuration if the file is
            missing or invalid
        """
        if not self.config_file.exists():
            return create_default_config(**overrides)

        try:
            with self.config_file.open("r", encoding="utf-8") as f:
                config_dict = json.load(f)
            if not isinstance(config_dict, dict):
                raise ValueError("top-level JSON value must be an object")

            known = {f.name for f in fields(SubMinerConfig)}
            unknown = sorted(set(config_dict) - known)
            if unknown:
                logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

            values = {k: v for k, v in config_dict.items() if k in known}
            if isinstance(values.get("anki_fields"), dict):
                # Roles missing from the file keep their default field names
                values["anki_fields"] = {
                    **create_default_config().anki_fields,
                    **values["anki_fields"],
                }
            values.update(overrides)
            return SubMinerConfig(**values)

        except (json.JSONDecodeError, TypeError, ValueError, ConfigurationError) as e:
            logger.warning(f"Invalid config file, using defaults: {e}")
            return create_default_config(**overrides)

    def config_exists(self) -> bool:
        """Check if configuration file exists."""
        return self.config_file.exists()

    @staticmethod
    def _paths_to_strings(data: dict[str, Any]) -> dict[str, Any]:
        """Convert Path objects to strings in a dict."""
        result: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, Path):
                result[key] = str(value)
            elif isinstance(value, dict):
                result[key] = ConfigManager._paths_to_strings(value)
            else:
                result[key] = value
        return result

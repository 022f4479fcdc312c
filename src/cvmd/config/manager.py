"""Configuration manager for cvmd."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigError
from ..models.config import Config

CONFIG_FILENAME = "cvmd.yaml"
SYSTEM_CONFIG_FILE = Path("/etc/cvmd") / CONFIG_FILENAME
CONFIG_ENV = "CVMD_CONFIG"


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Load, merge and save cvmd configuration."""

    def __init__(
        self,
        config_file: Path | None = None,
        system_config_file: Path | None = SYSTEM_CONFIG_FILE,
    ) -> None:
        """Initialize config manager.

        Args:
            config_file: Explicit config file (defaults to $CVMD_CONFIG, then ./cvmd.yaml)
            system_config_file: System-wide file merged beneath the leaf file
        """
        self.explicit = config_file is not None or bool(os.environ.get(CONFIG_ENV))
        if config_file is None:
            config_file = Path(os.environ.get(CONFIG_ENV) or CONFIG_FILENAME)
        self.config_file = config_file
        self.system_config_file = system_config_file
        self._config: Config | None = None

    def exists(self) -> bool:
        """Check if the leaf config file exists.

        Returns:
            True if config file exists
        """
        return self.config_file.exists()

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def load(self) -> Config:
        """Load configuration: defaults, then the system file, then the leaf file.

        Returns:
            Loaded configuration with absolute paths

        Raises:
            ConfigError: If an explicit config file is missing or any file is invalid
        """
        data: dict[str, Any] = {}
        if self.system_config_file is not None and self.system_config_file.exists():
            data = merge_dicts(data, self._read(self.system_config_file))

        if self.exists():
            data = merge_dicts(data, self._read(self.config_file))
            base = self.config_file.resolve().parent
        elif self.explicit:
            raise ConfigError(f"Configuration file not found at {self.config_file}")
        else:
            base = Path.cwd()

        try:
            config = Config(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        self._config = config.abs_path(base)
        return self._config

    def save(self, config: Config) -> None:
        """Save configuration to the leaf file.

        Args:
            config: Configuration to save

        Raises:
            ConfigError: If save fails
        """
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            data = config.model_dump(mode="json", exclude_none=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            self._config = config
        except OSError as e:
            raise ConfigError(f"Failed to save config: {e}") from e

    def get(self) -> Config:
        """Get current configuration, loading if necessary.

        Returns:
            Current configuration
        """
        if self._config is None:
            self._config = self.load()
        return self._config

"""Configuration loader and models."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from display_launcher.gateway.filters import AppFilterPolicy
from display_launcher.gateway.staging import StagingConfig
from display_launcher.platform.adb import AdbConfig
from display_launcher.system.restart_policy import RestartPolicy

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration is invalid."""


class LauncherConfig(BaseModel):
    """Configuration for the launcher control service."""

    # Control API
    host: str = Field(default="0.0.0.0", description="Host the control API binds to")
    port: int = Field(default=9091, description="Control API port", ge=1, le=65535)

    # Package of the launcher itself, never listed
    host_package: Optional[str] = Field(default=None)

    log_level: str = Field(default="INFO")

    monitor_interval_sec: float = Field(
        default=60.0,
        description="Interval between server liveness checks",
        ge=1.0,
        le=3600.0,
    )

    adb: AdbConfig = Field(default_factory=AdbConfig)
    app_filter: AppFilterPolicy = Field(default_factory=AppFilterPolicy)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    restart: RestartPolicy = Field(default_factory=RestartPolicy)


# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "DISPLAY_LAUNCHER_HOST": "host",
    "DISPLAY_LAUNCHER_PORT": "port",
    "DISPLAY_LAUNCHER_HOST_PACKAGE": "host_package",
    "DISPLAY_LAUNCHER_STAGING_DIR": "staging.directory",
    "ADB_PATH": "adb.adb_path",
    "ANDROID_SERIAL": "adb.serial",
}


class ConfigLoader:
    """Loads launcher configuration from YAML and the environment."""

    DEFAULT_CONFIG_PATHS = [
        "/etc/display-launcher/config.yaml",
        "./config/display_launcher.yaml",
        "~/.config/display-launcher/config.yaml",
    ]

    def __init__(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> None:
        """Initialize configuration loader.

        Args:
            config_path: Path to configuration file (optional)
            environ: Environment mapping (os.environ if omitted)
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.raw: Dict[str, Any] = {}
        self.source: Optional[Path] = None

    def _candidate_paths(self) -> List[str]:
        if self.config_path:
            return [self.config_path]
        return self.DEFAULT_CONFIG_PATHS

    def _read_file(self) -> Dict[str, Any]:
        """Read the first readable configuration file.

        Returns:
            Raw configuration dictionary (empty if none found)
        """
        for path in self._candidate_paths():
            expanded_path = Path(path).expanduser()
            if not expanded_path.exists():
                continue
            try:
                with open(expanded_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise ConfigError(f"Top level of {expanded_path} must be a mapping")
                self.source = expanded_path
                logger.info(f"Loaded configuration from {expanded_path}")
                return data
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Error loading config from {expanded_path}: {e}")

        if self.config_path:
            logger.warning(f"Configuration file {self.config_path} not found, using defaults")
        else:
            logger.info("No configuration file found, using defaults")
        return {}

    def _apply_env(self, data: Dict[str, Any]) -> None:
        for env_name, key in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                set_dotted(data, key, value)
                logger.debug(f"Config {key} overridden by {env_name}")

    def load(self) -> LauncherConfig:
        """Load and validate configuration.

        Returns:
            Validated configuration

        Raises:
            ConfigError: If the configuration is invalid
        """
        self.raw = self._read_file()
        self._apply_env(self.raw)

        try:
            return LauncherConfig.model_validate(self.raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get raw configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., 'adb.serial')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value: Any = self.raw
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value


def set_dotted(config: Dict[str, Any], key: str, value: Any) -> None:
    """Set a nested value by dot-notation key, creating sections as needed."""
    keys = key.split(".")
    for k in keys[:-1]:
        if k not in config or not isinstance(config[k], dict):
            config[k] = {}
        config = config[k]
    config[keys[-1]] = value


def load_config(config_path: Optional[str] = None) -> LauncherConfig:
    """Load configuration from the default locations."""
    return ConfigLoader(config_path).load()

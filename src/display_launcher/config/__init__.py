"""Configuration management."""

from display_launcher.config.loader import ConfigError, ConfigLoader, LauncherConfig, load_config

__all__ = ["ConfigError", "ConfigLoader", "LauncherConfig", "load_config"]

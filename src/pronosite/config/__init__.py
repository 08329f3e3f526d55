"""Configuration - TOML profiles and logging setup."""

from pronosite.config.settings import Settings, configure_logging, get_settings, load_config

__all__ = ["Settings", "configure_logging", "get_settings", "load_config"]

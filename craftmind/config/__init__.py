"""Configuration management for craftmind."""

from craftmind.config.loader import Config, ConfigManager, get_default_config, load_config
from craftmind.config.secrets import load_environment_secrets

__all__ = [
    "Config",
    "ConfigManager",
    "get_default_config",
    "load_config",
    "load_environment_secrets",
]

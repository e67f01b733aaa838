"""Configuration module."""

from scribe.config.loader import get_default_config, load_config
from scribe.config.models import (
    ConfigError,
    ModelConfig,
    ProviderConfig,
    ScribeConfig,
    StreamingConfig,
    TavilyConfig,
    TelegramConfig,
)
from scribe.config.paths import get_config_path, get_scribe_home

__all__ = [
    "ConfigError",
    "ModelConfig",
    "ProviderConfig",
    "ScribeConfig",
    "StreamingConfig",
    "TavilyConfig",
    "TelegramConfig",
    "get_config_path",
    "get_default_config",
    "get_scribe_home",
    "load_config",
]

"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from scribe.config.models import ScribeConfig
from scribe.config.paths import get_config_path


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.scribe/config.toml (or SCRIBE_HOME)
        Path("/etc/scribe/config.toml"),  # System-wide
    ]


def _set_secret_from_env(section: dict[str, Any], key: str, env_var: str) -> None:
    """Set a secret value from environment if not already set."""
    if section.get(key) is None:
        value = os.environ.get(env_var)
        if value:
            section[key] = SecretStr(value)


def _resolve_env_secrets(config: dict[str, Any]) -> dict[str, Any]:
    """Resolve secrets from environment variables where not set in config.

    Sections are created on demand so a config file (or no file at all) can
    rely entirely on the environment.
    """
    mappings = [
        ("anthropic", "api_key", "ANTHROPIC_API_KEY"),
        ("openai", "api_key", "OPENAI_API_KEY"),
        ("telegram", "bot_token", "TELEGRAM_BOT_TOKEN"),
        ("tavily", "api_key", "TAVILY_API_KEY"),
    ]
    for parent_key, secret_key, env_var in mappings:
        section = config.get(parent_key)
        if section is None:
            if not os.environ.get(env_var):
                continue
            section = config[parent_key] = {}
        _set_secret_from_env(section, secret_key, env_var)

    return config


def load_config(path: Path | None = None) -> ScribeConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated ScribeConfig instance.

    Raises:
        FileNotFoundError: If no config file is found.
        ValueError: If config file is invalid.
    """
    config_path: Path | None = None

    default_paths = _get_default_config_paths()

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in default_paths:
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    if config_path is None:
        raise FileNotFoundError(
            f"No config file found. Searched: {', '.join(str(p) for p in default_paths)}"
        )

    with config_path.open("rb") as f:
        raw_config = tomllib.load(f)

    raw_config = _resolve_env_secrets(raw_config)

    return ScribeConfig.model_validate(raw_config)


def get_default_config() -> ScribeConfig:
    """Get a default configuration with secrets taken from the environment."""
    return ScribeConfig.model_validate(_resolve_env_secrets({}))

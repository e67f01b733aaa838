"""Centralized path management for Scribe.

The base directory can be overridden with the SCRIBE_HOME environment variable.

Default locations:
- Linux/macOS: ~/.scribe
- Windows: %USERPROFILE%\\.scribe
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "SCRIBE_HOME"


@lru_cache(maxsize=1)
def get_scribe_home() -> Path:
    """Get the base directory for Scribe state.

    Resolution order:
    1. SCRIBE_HOME environment variable (if set)
    2. ~/.scribe
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".scribe"


def get_config_path() -> Path:
    """Get the path to the user config file."""
    return get_scribe_home() / "config.toml"

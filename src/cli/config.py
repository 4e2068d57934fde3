"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from sync.errors import ConfigError

from .config_models import SyncConfig

CONFIG_ENV_VAR = "BEESYNC_CONFIG"


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    locations = [
        Path.cwd() / "beesync.yaml",
        Path.home() / ".config" / "beesync" / "config.yaml",
        Path.home() / ".beesync.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> SyncConfig:
    """Load configuration as a validated model.

    Without any config file the defaults are returned, which configure no jobs.

    Raises:
        ConfigError: explicit path missing, invalid YAML, or validation failure.
    """
    data = {}

    path = Path(config_path).expanduser() if config_path else find_config()
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    try:
        return SyncConfig.from_dict(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed: {e}") from e

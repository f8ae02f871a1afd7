"""Harness configuration management.

Handles persistent configuration stored in ~/.story-harness/config.yaml.
Supports environment variable overrides and CLI flag precedence.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .shared.logging import get_logger
from .shared.paths import CONFIG_FILE

logger = get_logger(__name__)

# Default values
DEFAULT_BASE_URL = "https://d3s5nxhwblsjbi.cloudfront.net"
DEFAULT_TIMEOUT = 30.0
DEFAULT_OUTPUT_FORMAT = "table"

CONFIG_KEYS = ("base_url", "username", "password", "timeout", "insecure", "output_format")

# Environment variable mappings
ENV_VARS = {
    "base_url": "STORY_HARNESS_URL",
    "username": "STORY_HARNESS_USERNAME",
    "password": "STORY_HARNESS_PASSWORD",
    "timeout": "STORY_HARNESS_TIMEOUT",
    "insecure": "STORY_HARNESS_INSECURE",
    "output_format": "STORY_HARNESS_OUTPUT_FORMAT",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class HarnessConfig:
    """Harness configuration."""

    base_url: str = DEFAULT_BASE_URL
    username: str | None = None
    password: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    insecure: bool = False
    output_format: str = DEFAULT_OUTPUT_FORMAT

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def override(self, **values: Any) -> "HarnessConfig":
        """Apply CLI flag values on top of this config.

        None values are ignored so unset flags keep the lower-precedence value.
        """
        for key, value in values.items():
            if key not in CONFIG_KEYS:
                raise KeyError(f"Unknown config key: {key}")
            if value is None:
                continue
            setattr(self, key, _coerce(key, value))
            self._sources[key] = "flag"
        return self


def _coerce(key: str, value: Any) -> Any:
    """Convert a raw value to the type of the given config key."""
    if key == "timeout":
        return float(value)
    if key == "insecure":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_VALUES
    return str(value)


def get_config_path() -> Path:
    """Get the config file path.

    Returns:
        Path to ~/.story-harness/config.yaml
    """
    return CONFIG_FILE


def _read_config_file(config_path: Path) -> dict[str, Any]:
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {config_path}")
    return data


def load_config() -> HarnessConfig:
    """Load harness configuration.

    Precedence (highest to lowest):
    1. Environment variables
    2. Config file (~/.story-harness/config.yaml)
    3. Defaults

    CLI flags are applied afterwards by the caller via HarnessConfig.override.

    Returns:
        HarnessConfig with values and sources
    """
    config = HarnessConfig()
    sources: dict[str, str] = {key: "default" for key in CONFIG_KEYS}

    # Load from config file
    config_path = get_config_path()
    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("config_file_ignored", path=str(config_path), error=str(e))
            file_config = {}

        for key in CONFIG_KEYS:
            if key not in file_config or file_config[key] is None:
                continue
            try:
                setattr(config, key, _coerce(key, file_config[key]))
                sources[key] = "config file"
            except (TypeError, ValueError):
                logger.warning("config_value_ignored", key=key, source="config file")

    # Override with environment variables
    for key, env_var in ENV_VARS.items():
        raw = os.environ.get(env_var)
        if not raw:
            continue
        try:
            setattr(config, key, _coerce(key, raw))
            sources[key] = "environment"
        except ValueError:
            logger.warning("config_value_ignored", key=key, source="environment")

    config._sources = sources
    return config


def save_config(key: str, value: Any) -> None:
    """Save a config value to the config file.

    Args:
        key: Config key (one of CONFIG_KEYS)
        value: Value to save
    """
    if key not in CONFIG_KEYS:
        raise KeyError(f"Unknown config key: {key}")

    config_path = get_config_path()

    existing: dict[str, Any] = {}
    if config_path.exists():
        existing = _read_config_file(config_path)

    existing[key] = _coerce(key, value)

    config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)

    # Config may hold a password
    config_path.chmod(0o600)


def unset_config(key: str) -> bool:
    """Remove a config value from the config file.

    Args:
        key: Config key to remove

    Returns:
        True if key was removed, False if not found
    """
    config_path = get_config_path()
    if not config_path.exists():
        return False

    existing = _read_config_file(config_path)

    if key not in existing:
        return False

    del existing[key]

    with open(config_path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)

    return True

"""Configuration utilities for the SiaSync CLI.

Settings live in a JSON file whose keys are SyncConfig field names.
Command-line options override the environment, which overrides the file.
"""

from __future__ import annotations

import json
from dataclasses import MISSING, fields
from pathlib import Path
from typing import Any

from siasync.core.config import ConfigError, SyncConfig


def get_config_dir() -> Path:
    """Get the configuration directory for SiaSync.

    Returns:
        Path to ~/.siasync.
    """
    return Path.home() / ".siasync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if not config_file.exists():
        return {}
    try:
        return dict(json.loads(config_file.read_text()))
    except ValueError as e:
        raise ConfigError(f"Invalid config file {config_file}: {e}") from e


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def config_keys() -> list[str]:
    """Names accepted in the config file."""
    return [f.name for f in fields(SyncConfig)]


def coerce_value(key: str, raw: str) -> Any:
    """Convert a command-line string to the type of a SyncConfig field.

    Raises:
        ConfigError: If key is unknown or raw does not parse.
    """
    field_map = {f.name: f for f in fields(SyncConfig)}
    if key not in field_map:
        raise ConfigError(f"Unknown setting {key!r}")

    default = field_map[key].default
    if default is MISSING:
        return raw
    try:
        if isinstance(default, bool):
            lowered = raw.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(f"not a boolean: {raw}")
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, tuple):
            return [item.strip() for item in raw.split(",") if item.strip()]
    except ValueError as e:
        raise ConfigError(f"Invalid value for {key}: {e}") from e
    return raw


def build_config(overrides: dict[str, Any]) -> SyncConfig:
    """Merge the config file with command-line overrides.

    None values and empty tuples in overrides mean "not given".
    """
    values = load_config()
    for key, value in overrides.items():
        if value is None or value == ():
            continue
        values[key] = value
    return SyncConfig.from_mapping(values)

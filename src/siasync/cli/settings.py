"""Config commands for the SiaSync CLI.

Commands:
- config show: Print the effective configuration
- config set: Persist one setting to the config file
"""

from __future__ import annotations

import json
import sys

import click

from siasync.cli.config import (
    build_config,
    coerce_value,
    config_keys,
    get_config_file,
    load_config,
    save_config,
)
from siasync.core.config import ConfigError


@click.group("config")
def config_group() -> None:
    """Show or change saved settings."""


@config_group.command("show")
def show() -> None:
    """Print the effective configuration (password masked)."""
    try:
        config = build_config({})
    except ConfigError:
        # No folder configured yet, show raw file contents
        raw = load_config()
        if raw.get("api_password"):
            raw["api_password"] = "********"
        click.echo(json.dumps(raw, indent=2))
        return
    click.echo(json.dumps(config.to_dict(), indent=2))


@config_group.command("set")
@click.argument("key", type=click.Choice(config_keys()))
@click.argument("value")
def set_value(key: str, value: str) -> None:
    """Save KEY=VALUE in the config file."""
    try:
        coerced = coerce_value(key, value)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    config = load_config()
    config[key] = coerced
    save_config(config)
    click.echo(f"Saved {key} to {get_config_file()}")

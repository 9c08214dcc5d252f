"""Command-line interface for SiaSync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- run: Mirror a folder into Sia until interrupted
- config show: Print the effective configuration
- config set: Persist a setting
"""

from __future__ import annotations

import click

from siasync.cli.config import (
    build_config,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from siasync.cli.run import run
from siasync.cli.settings import config_group


@click.group()
@click.version_option(package_name="siasync")
def cli() -> None:
    """SiaSync - mirror a folder into Sia and promote healthy uploads."""


cli.add_command(run)
cli.add_command(config_group)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "build_config",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]

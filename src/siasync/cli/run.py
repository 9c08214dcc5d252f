"""Run command for the SiaSync CLI.

Commands:
- run: Mirror a folder into Sia until interrupted
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
from pathlib import Path

import click

from siasync.cli.config import build_config
from siasync.core.config import FINGERPRINT_METHODS, ConfigError

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Send siasync logs to stderr at the given level."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    siasync_logger = logging.getLogger("siasync")
    for existing in siasync_logger.handlers[:]:
        siasync_logger.removeHandler(existing)
    siasync_logger.addHandler(handler)
    siasync_logger.setLevel(level.upper())
    siasync_logger.propagate = False


@click.command()
@click.argument(
    "directory",
    required=False,
    type=click.Path(path_type=Path, file_okay=False),
)
@click.option("--address", "api_address", help="Sia API address (host:port).")
@click.option(
    "--password",
    "api_password",
    envvar="SIA_API_PASSWORD",
    help="Sia API password (or SIA_API_PASSWORD).",
)
@click.option("--agent", "user_agent", help="User agent sent to siad.")
@click.option("--staging-dir", help="Sia folder new uploads are staged in.")
@click.option("--prod-dir", "production_dir", help="Sia folder healthy uploads move to.")
@click.option(
    "--archive/--no-archive",
    default=None,
    help="Keep old remote copies instead of deleting before re-upload.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Show what would be uploaded without changing files in Sia.",
)
@click.option("--data-pieces", type=int, help="Erasure coding data pieces.")
@click.option("--parity-pieces", type=int, help="Erasure coding parity pieces.")
@click.option(
    "--interval",
    "promotion_interval",
    type=float,
    help="Seconds between promotion checks.",
)
@click.option(
    "--threshold",
    "redundancy_threshold",
    type=float,
    help="Redundancy a staging directory must exceed to be promoted.",
)
@click.option(
    "--category",
    "categories",
    multiple=True,
    help="Top-level staging directory to promote from (repeatable).",
)
@click.option(
    "--fingerprint",
    type=click.Choice(FINGERPRINT_METHODS),
    help="How local changes are detected.",
)
@click.option("--no-promote", is_flag=True, help="Do not promote staging directories.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging verbosity.",
)
def run(
    directory: Path | None,
    no_promote: bool,
    log_level: str,
    **options: object,
) -> None:
    """Mirror DIRECTORY into Sia and promote replicated uploads.

    Runs until interrupted (Ctrl+C or SIGTERM).
    """
    from siasync.client.api import APIError, RenterClient
    from siasync.sync.folder import SiaFolder

    configure_logging(log_level)

    try:
        config = build_config({"root": directory, **options})
        config.validate()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    client = RenterClient.from_config(config)
    folder = SiaFolder(config, client, promote=not no_promote)

    try:
        folder.start()
    except (ConfigError, APIError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        client.close()
        sys.exit(1)

    click.echo(f"Watching for changes to {config.root} (Ctrl+C to stop)")
    if config.dry_run:
        click.echo("Dry run: nothing will be changed in Sia")

    stop_event = threading.Event()

    def signal_handler(signum: int, frame: object) -> None:
        click.echo("\nCaught quit signal, exiting...")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        while not stop_event.is_set():
            stop_event.wait(timeout=0.5)
    except KeyboardInterrupt:
        click.echo("\nStopping...")
    finally:
        folder.close()
        client.close()

    stats = folder.stats
    click.echo(
        f"Done: {stats.uploads} uploaded, {stats.deletes} deleted, "
        f"{stats.errors} errors"
    )

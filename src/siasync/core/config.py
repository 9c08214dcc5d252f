"""Configuration for the sync engine.

This module defines SyncConfig, the single configuration object handed to
the engine, the remote client and the promotion scheduler.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path, PurePosixPath
from typing import Any

FINGERPRINT_METHODS = ("size", "sha256")


class ConfigError(ValueError):
    """Invalid configuration, reported before any watching begins."""


@dataclass
class SyncConfig:
    """Configuration for a synchronized folder.

    Attributes:
        root: Local directory to mirror.
        api_address: host:port of the Sia daemon API.
        api_password: Sia API password.
        user_agent: User agent required by siad.
        staging_dir: Remote prefix new uploads land under.
        production_dir: Remote prefix healthy directories are promoted to.
        archive: Skip delete-before-reupload when a file changes.
        dry_run: Never mutate the remote store, only the local index.
        data_pieces: Erasure coding data pieces per upload.
        parity_pieces: Erasure coding parity pieces per upload.
        promotion_interval: Seconds between promotion checks.
        redundancy_threshold: A staging child is promoted once its aggregate
            minimum redundancy is strictly above this value.
        categories: Top-level staging subdirectories checked for promotion.
        fingerprint: "size" (cheap, collision prone) or "sha256".
        timeout: Remote request timeout in seconds.
    """

    root: Path
    api_address: str = "127.0.0.1:9980"
    api_password: str = ""
    user_agent: str = "Sia-Agent"
    staging_dir: str = "fuse/staging"
    production_dir: str = "fuse/prod"
    archive: bool = False
    dry_run: bool = False
    data_pieces: int = 10
    parity_pieces: int = 30
    promotion_interval: float = 5.0
    redundancy_threshold: float = 1.0
    categories: tuple[str, ...] = field(default=("movies", "tv"))
    fingerprint: str = "size"
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Normalize paths and prefixes."""
        self.root = Path(self.root).expanduser().resolve()
        self.staging_dir = self.staging_dir.strip("/")
        self.production_dir = self.production_dir.strip("/")
        if isinstance(self.categories, str):
            self.categories = tuple(
                c.strip() for c in self.categories.split(",") if c.strip()
            )
        else:
            self.categories = tuple(self.categories)

    @property
    def api_url(self) -> str:
        """Base URL of the Sia daemon API."""
        address = self.api_address.rstrip("/")
        if address.startswith(("http://", "https://")):
            return address
        return f"http://{address}"

    def validate(self) -> None:
        """Check the configuration.

        Raises:
            ConfigError: If any value is unusable.
        """
        if not self.root.exists():
            raise ConfigError(f"Sync folder does not exist: {self.root}")
        if not self.root.is_dir():
            raise ConfigError(f"Sync folder is not a directory: {self.root}")

        if not self.staging_dir or not self.production_dir:
            raise ConfigError("Staging and production directories must be set")
        staging = PurePosixPath(self.staging_dir)
        production = PurePosixPath(self.production_dir)
        if staging == production:
            raise ConfigError("Staging and production directories must differ")
        if staging in production.parents or production in staging.parents:
            raise ConfigError(
                "Staging and production directories must not be nested"
            )

        if self.data_pieces < 1:
            raise ConfigError("data_pieces must be at least 1")
        if self.parity_pieces < 0:
            raise ConfigError("parity_pieces must not be negative")
        if self.promotion_interval <= 0:
            raise ConfigError("promotion_interval must be positive")
        if self.redundancy_threshold < 0:
            raise ConfigError("redundancy_threshold must not be negative")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.fingerprint not in FINGERPRINT_METHODS:
            raise ConfigError(
                f"Unknown fingerprint method {self.fingerprint!r}, "
                f"expected one of {', '.join(FINGERPRINT_METHODS)}"
            )
        for category in self.categories:
            if not category or category.startswith("/") or ".." in category.split("/"):
                raise ConfigError(f"Invalid category directory: {category!r}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> SyncConfig:
        """Build a config from merged file/CLI values, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known and v is not None}
        if "root" not in kwargs:
            raise ConfigError("No sync folder given")
        return cls(**kwargs)

    def to_dict(self, mask_secrets: bool = True) -> dict[str, Any]:
        """Serialize for display or persistence."""
        data = asdict(self)
        data["root"] = str(self.root)
        data["categories"] = list(self.categories)
        if mask_secrets and data["api_password"]:
            data["api_password"] = "********"
        return data

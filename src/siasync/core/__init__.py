"""Core module - configuration, path mapping and fingerprints."""

from siasync.core.checksum import (
    Fingerprinter,
    get_fingerprinter,
    sha256_fingerprint,
    size_baseline,
    size_fingerprint,
)
from siasync.core.config import FINGERPRINT_METHODS, ConfigError, SyncConfig
from siasync.core.paths import (
    is_under,
    rebase,
    strip_prefix,
    to_relative,
    to_remote,
)

__all__ = [
    # Checksum
    "Fingerprinter",
    "get_fingerprinter",
    "sha256_fingerprint",
    "size_baseline",
    "size_fingerprint",
    # Config
    "FINGERPRINT_METHODS",
    "ConfigError",
    "SyncConfig",
    # Paths
    "is_under",
    "rebase",
    "strip_prefix",
    "to_relative",
    "to_remote",
]

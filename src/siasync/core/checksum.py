"""Cheap file fingerprints used to detect local changes."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

Fingerprinter = Callable[[Path], str]

# Read size for hashing
HASH_BLOCK_SIZE = 1024 * 1024


def size_fingerprint(path: Path) -> str:
    """Return the file size as a string.

    Fast, but two edits that keep the size are not told apart.

    Raises:
        OSError: If the file cannot be stat'd.
    """
    return str(Path(path).stat().st_size)


def sha256_fingerprint(path: Path) -> str:
    """Return the hex SHA-256 of the file content.

    Raises:
        OSError: If the file cannot be read.
    """
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(HASH_BLOCK_SIZE), b""):
            hasher.update(block)
    return hasher.hexdigest()


_FINGERPRINTERS: dict[str, Fingerprinter] = {
    "size": size_fingerprint,
    "sha256": sha256_fingerprint,
}


def get_fingerprinter(method: str) -> Fingerprinter:
    """Look up a fingerprint function by name.

    Raises:
        ValueError: If method is unknown.
    """
    try:
        return _FINGERPRINTERS[method]
    except KeyError:
        raise ValueError(f"Unknown fingerprint method: {method}") from None


def size_baseline(size: int) -> str:
    """Fingerprint recorded for a file known only by its remote size."""
    return str(size)

"""Mapping between local relative paths and remote siapaths.

Every local file is keyed by its path relative to the synchronized root,
using forward slashes. A remote siapath is that key prefixed by a
namespace directory (staging or production).
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath


def to_relative(path: Path | str, root: Path) -> str:
    """Return the index key of a local path.

    Args:
        path: Absolute path, or a path already relative to root.
        root: Synchronized root directory.

    Returns:
        Forward-slash path relative to root.

    Raises:
        ValueError: If path is outside root or is root itself.
    """
    path = Path(path)
    if path.is_absolute():
        rel = path.relative_to(root)
    else:
        rel = path
    key = PurePosixPath(*rel.parts).as_posix()
    if key in ("", "."):
        raise ValueError(f"{path} is the synchronized root")
    if key == ".." or key.startswith("../"):
        raise ValueError(f"{path} is outside {root}")
    return key


def to_remote(prefix: str, rel: str) -> str:
    """Join a namespace prefix and an index key into a siapath."""
    return str(PurePosixPath(prefix.strip("/")) / rel)


def is_under(remote_path: str, prefix: str) -> bool:
    """Check whether a siapath lies strictly beneath prefix."""
    return remote_path.startswith(prefix.strip("/") + "/")


def strip_prefix(remote_path: str, prefix: str) -> str:
    """Inverse of to_remote.

    Raises:
        ValueError: If remote_path is not beneath prefix.
    """
    if not is_under(remote_path, prefix):
        raise ValueError(f"{remote_path} is not under {prefix}")
    return remote_path[len(prefix.strip("/")) + 1 :]


def rebase(remote_path: str, old_prefix: str, new_prefix: str) -> str:
    """Move a siapath from one namespace to another, keeping its suffix."""
    return to_remote(new_prefix, strip_prefix(remote_path, old_prefix))

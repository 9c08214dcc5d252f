"""Ignore patterns for the synchronized tree.

This module provides:
- IgnorePatterns: gitignore-style matching applied to the walk and to events
- DEFAULT_IGNORE_PATTERNS: Editor and OS droppings never worth uploading
"""

from __future__ import annotations

import fnmatch
from pathlib import Path

IGNORE_FILE_NAME = ".siasyncignore"

DEFAULT_IGNORE_PATTERNS = [
    ".DS_Store",
    "Thumbs.db",
    "*.part",
    "*.tmp",
    "*.swp",
    "~*",
    IGNORE_FILE_NAME,
]


class IgnorePatterns:
    """Matches relative paths against gitignore-style patterns."""

    def __init__(self, patterns: list[str] | None = None) -> None:
        self._patterns = list(DEFAULT_IGNORE_PATTERNS)
        if patterns:
            self._patterns.extend(patterns)

    @property
    def patterns(self) -> list[str]:
        """Active patterns, defaults first."""
        return list(self._patterns)

    def add_pattern(self, pattern: str) -> None:
        """Add an ignore pattern."""
        self._patterns.append(pattern)

    def load_from_file(self, path: Path) -> None:
        """Append patterns from an ignore file, if it exists."""
        if not path.exists():
            return
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                self._patterns.append(line)

    def should_ignore(self, path: Path, root: Path) -> bool:
        """Check if a path should be skipped.

        Args:
            path: Absolute path to check.
            root: Synchronized root directory.

        Returns:
            True for symlinks and for paths matching any pattern.
        """
        if path.is_symlink():
            return True

        try:
            rel = path.relative_to(root)
        except ValueError:
            return False
        if not rel.parts:
            return False

        rel_str = rel.as_posix()
        for pattern in self._patterns:
            if pattern.endswith("/"):
                # Directory pattern: the path or any of its parents
                name = pattern.rstrip("/")
                if any(fnmatch.fnmatch(part, name) for part in rel.parts[:-1]):
                    return True
                if fnmatch.fnmatch(rel.name, name) and path.is_dir():
                    return True
            elif "/" in pattern:
                if fnmatch.fnmatch(rel_str, pattern):
                    return True
            elif fnmatch.fnmatch(rel.name, pattern):
                return True

        return False

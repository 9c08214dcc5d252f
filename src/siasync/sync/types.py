"""Shared types for the sync engine.

This module provides:
- EventKind, WatchEvent: Directory watcher events
- Namespace, FileEntry: Local index records
- DispatchStats, PromotionStats: Counters for the two background loops
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class EventKind(Enum):
    """Kind of file system change."""

    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"


@dataclass
class WatchEvent:
    """A single change reported by the directory watcher."""

    path: Path
    kind: EventKind
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        kind = self.kind.name
        if self.is_directory:
            kind += " dir"
        return f"{kind} {self.path}"


class Namespace(Enum):
    """Remote namespace a file currently lives in."""

    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class FileEntry:
    """Indexed local file.

    Attributes:
        fingerprint: Last recorded fingerprint (size or hash).
        namespace: Where the remote copy is expected to live.
    """

    fingerprint: str
    namespace: Namespace = Namespace.STAGING


@dataclass
class DispatchStats:
    """Statistics for the event dispatcher."""

    events_processed: int = 0
    uploads: int = 0
    deletes: int = 0
    retries: int = 0
    errors: int = 0
    watcher_errors: int = 0


@dataclass
class PromotionStats:
    """Statistics for the promotion scheduler."""

    ticks: int = 0
    promoted: int = 0
    failures: int = 0

"""Sync engine.

Architecture:
    DirectoryWatcher → SiaFolder dispatcher → RenterClient
                                ↕
                           LocalIndex ← PromotionScheduler

Components:
- **LocalIndex**: In-memory map of indexed files and registered directories
- **DirectoryWatcher**: watchdog-based watcher with an explicit watch set
- **SiaFolder**: Startup reconciliation, event handlers, create retries and
  the dispatcher thread
- **PromotionScheduler**: Renames replicated staging directories into
  production on a fixed interval
"""

from siasync.sync.folder import RemoteStore, SiaFolder
from siasync.sync.ignore import DEFAULT_IGNORE_PATTERNS, IgnorePatterns
from siasync.sync.index import LocalIndex
from siasync.sync.promotion import PromotionScheduler
from siasync.sync.types import (
    DispatchStats,
    EventKind,
    FileEntry,
    Namespace,
    PromotionStats,
    WatchEvent,
)
from siasync.sync.watcher import DirectoryWatcher

__all__ = [
    # Engine
    "RemoteStore",
    "SiaFolder",
    "PromotionScheduler",
    # State
    "LocalIndex",
    # Watcher
    "DirectoryWatcher",
    "DEFAULT_IGNORE_PATTERNS",
    "IgnorePatterns",
    # Types
    "DispatchStats",
    "EventKind",
    "FileEntry",
    "Namespace",
    "PromotionStats",
    "WatchEvent",
]

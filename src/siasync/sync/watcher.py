"""Directory watcher feeding the event dispatcher.

This module provides:
- DirectoryWatcher: Watches an explicit set of directories using watchdog
- QueueingEventHandler: Translates watchdog events into WatchEvent objects

Directories are watched one by one (non-recursive) so the engine decides
which subdirectories join the watch set, exactly as they are registered in
the local index. All output goes through one FIFO queue holding WatchEvent
objects, watcher faults (exception instances) and a final None sentinel
once the watcher is stopped.
"""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Union

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from siasync.sync.ignore import IgnorePatterns
from siasync.sync.types import EventKind, WatchEvent

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver, ObservedWatch

logger = logging.getLogger(__name__)

QueueItem = Union[WatchEvent, Exception, None]


def _decode(path: str | bytes) -> Path:
    if isinstance(path, bytes):
        path = path.decode("utf-8", errors="replace")
    return Path(path)


class QueueingEventHandler(FileSystemEventHandler):
    """Pushes translated events onto the watcher queue."""

    def __init__(
        self,
        root: Path,
        out: queue.Queue[QueueItem],
        ignore: IgnorePatterns,
    ) -> None:
        super().__init__()
        self._root = root
        self._out = out
        self._ignore = ignore

    def _emit(self, path: Path, kind: EventKind, is_directory: bool) -> None:
        if path == self._root or self._ignore.should_ignore(path, self._root):
            return
        try:
            path.relative_to(self._root)
        except ValueError:
            return
        event = WatchEvent(path=path, kind=kind, is_directory=is_directory)
        logger.debug("Watcher saw %s", event)
        self._out.put(event)

    def _translate(self, event: FileSystemEvent) -> None:
        src = _decode(event.src_path)
        is_directory = event.is_directory

        if isinstance(event, FileCreatedEvent | DirCreatedEvent):
            self._emit(src, EventKind.CREATE, is_directory)
        elif isinstance(event, FileModifiedEvent):
            # Directory modifications only mean a child changed
            self._emit(src, EventKind.WRITE, False)
        elif isinstance(event, FileDeletedEvent | DirDeletedEvent):
            self._emit(src, EventKind.REMOVE, is_directory)
        elif isinstance(event, FileMovedEvent | DirMovedEvent):
            self._emit(src, EventKind.REMOVE, is_directory)
            self._emit(_decode(event.dest_path), EventKind.CREATE, is_directory)

    def dispatch(self, event: FileSystemEvent) -> None:
        """Translate one watchdog event, reporting faults on the queue."""
        try:
            self._translate(event)
        except Exception as e:
            self._out.put(e)


class DirectoryWatcher:
    """Watches a set of directories and queues their changes."""

    def __init__(
        self,
        root: Path,
        ignore_patterns: IgnorePatterns | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            root: Synchronized root directory.
            ignore_patterns: Paths to leave out of the event stream.
        """
        self._root = Path(root).resolve()
        if not self._root.is_dir():
            raise ValueError(f"Watch path must be a directory: {root}")

        self._events: queue.Queue[QueueItem] = queue.Queue()
        self._handler = QueueingEventHandler(
            self._root,
            self._events,
            ignore_patterns or IgnorePatterns(),
        )
        self._observer: BaseObserver = Observer()
        self._watches: dict[Path, ObservedWatch] = {}
        self._lock = threading.Lock()
        self._running = False

    @property
    def root(self) -> Path:
        """Get the synchronized root."""
        return self._root

    @property
    def events(self) -> queue.Queue[QueueItem]:
        """Queue of events, watcher faults and the closing sentinel."""
        return self._events

    @property
    def is_running(self) -> bool:
        """Check if the observer thread is running."""
        return self._running

    @property
    def watched(self) -> set[Path]:
        """Directories currently in the watch set."""
        with self._lock:
            return set(self._watches)

    def start(self) -> None:
        """Start the observer thread."""
        if self._running:
            return
        self._observer.start()
        self._running = True

    def stop(self) -> None:
        """Stop watching and release the observer.

        Queues the None sentinel so a blocked consumer wakes up.
        """
        if not self._running:
            return
        self._running = False
        self._observer.stop()
        self._observer.join(timeout=5.0)
        with self._lock:
            self._watches.clear()
        self._events.put(None)

    def watch(self, path: Path) -> bool:
        """Add a directory to the watch set.

        Returns:
            False if it was already watched.

        Raises:
            OSError: If the directory cannot be watched.
        """
        path = Path(path)
        with self._lock:
            if path in self._watches:
                return False
            self._watches[path] = self._observer.schedule(
                self._handler, str(path), recursive=False
            )
        logger.debug("Watching %s", path)
        return True

    def unwatch(self, path: Path) -> bool:
        """Remove a directory from the watch set.

        Returns:
            False if it was not watched.
        """
        with self._lock:
            watch = self._watches.pop(Path(path), None)
        if watch is None:
            return False
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError) as e:
            # The emitter goes away on its own when the directory is deleted
            logger.debug("Unscheduling %s: %s", path, e)
        return True

    def get(self, timeout: float | None = None) -> QueueItem:
        """Block for the next queue item.

        Raises:
            queue.Empty: If timeout expires first.
        """
        return self._events.get(timeout=timeout)

    def __enter__(self) -> DirectoryWatcher:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()

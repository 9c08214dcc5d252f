"""Synchronized folder: reconciliation, live dispatch and create retries.

This module provides:
- RemoteStore: Protocol of the remote operations the engine needs
- SiaFolder: Mirrors a local directory into the staging namespace

Lifecycle:
    folder = SiaFolder(config, client)
    folder.start()   # walk, reconcile, then dispatcher + promotion threads
    ...
    folder.close()

Startup runs to completion before any live event is handled, so the
reconciliation and the dispatcher never overlap. Events are handled one at
a time in arrival order on a single dispatcher thread.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from siasync.client.api import NO_FILE_KNOWN, APIError, DirectoryHealth, RemoteFile
from siasync.core.checksum import get_fingerprinter, size_baseline
from siasync.core.config import ConfigError, SyncConfig
from siasync.core.paths import strip_prefix, to_relative, to_remote
from siasync.sync.ignore import IGNORE_FILE_NAME, IgnorePatterns
from siasync.sync.index import LocalIndex
from siasync.sync.promotion import PromotionScheduler
from siasync.sync.types import DispatchStats, EventKind, Namespace, WatchEvent
from siasync.sync.watcher import DirectoryWatcher

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class RemoteStore(Protocol):
    """Remote operations used by the engine and the promotion scheduler."""

    def health_check(self) -> bool: ...

    def upload_file(
        self, local_path: str, remote_path: str, data_pieces: int, parity_pieces: int
    ) -> None: ...

    def delete_file(self, remote_path: str) -> None: ...

    def list_files(self, prefixes: list[str] | None = None) -> list[RemoteFile]: ...

    def file_exists(self, remote_path: str) -> bool: ...

    def get_directory(self, remote_path: str) -> DirectoryHealth: ...

    def rename_path(self, old_path: str, new_path: str, is_dir: bool = False) -> None: ...


def _raise(error: OSError) -> None:
    raise error


class SiaFolder:
    """A local folder mirrored into a Sia renter."""

    def __init__(
        self,
        config: SyncConfig,
        client: RemoteStore,
        ignore_patterns: list[str] | None = None,
        promote: bool = True,
    ) -> None:
        """Initialize the folder. Nothing touches disk or network until start().

        Args:
            config: Sync configuration.
            client: Remote store client.
            ignore_patterns: Extra patterns on top of defaults and the
                root's ignore file.
            promote: Run the promotion scheduler alongside the dispatcher.
        """
        self._config = config
        self._client = client
        self._root = config.root
        self._index = LocalIndex()
        self._fingerprint = get_fingerprinter(config.fingerprint)
        self._stats = DispatchStats()

        self._ignore = IgnorePatterns(ignore_patterns)
        self._ignore.load_from_file(self._root / IGNORE_FILE_NAME)

        self._watcher: DirectoryWatcher | None = None
        self._promoter: PromotionScheduler | None = None
        self._promote = promote
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._closed = False

    @property
    def root(self) -> Path:
        """Get the synchronized root."""
        return self._root

    @property
    def index(self) -> LocalIndex:
        """Get the local state index."""
        return self._index

    @property
    def stats(self) -> DispatchStats:
        """Get dispatcher statistics."""
        return self._stats

    @property
    def watcher(self) -> DirectoryWatcher | None:
        """Get the directory watcher, once started."""
        return self._watcher

    @property
    def promoter(self) -> PromotionScheduler | None:
        """Get the promotion scheduler, once started."""
        return self._promoter

    # === Path mapping ===

    def relative(self, path: Path | str) -> str:
        """Normalize a local path to its index key."""
        return to_relative(path, self._root)

    def remote_path(self, key: str, namespace: Namespace = Namespace.STAGING) -> str:
        """Map an index key to its siapath in a namespace."""
        if namespace is Namespace.PRODUCTION:
            return to_remote(self._config.production_dir, key)
        return to_remote(self._config.staging_dir, key)

    # === Lifecycle ===

    def start(self) -> None:
        """Reconcile with the renter, then start the background loops.

        Raises:
            ConfigError: If the configuration is invalid or siad is unreachable.
            OSError: If the local walk fails.
            APIError: If a startup upload or listing fails.
        """
        if self._thread is not None:
            return

        self._config.validate()
        if not self._client.health_check():
            raise ConfigError(f"Sia API unreachable at {self._config.api_url}")

        self._watcher = DirectoryWatcher(self._root, self._ignore)
        self._watcher.start()
        try:
            self._watcher.watch(self._root)
            self.reconcile()
        except BaseException:
            self._watcher.stop()
            raise

        self._thread = threading.Thread(
            target=self._run,
            name="SiaFolderDispatcher",
            daemon=True,
        )
        self._thread.start()

        if self._promote:
            self._promoter = PromotionScheduler(self._client, self._config, self._index)
            self._promoter.start()

        logger.info("Watching %s for changes", self._root)

    def close(self, timeout: float = 10.0) -> None:
        """Stop the dispatcher and the scheduler and release the watcher."""
        if self._closed:
            return
        self._closed = True
        self._stop_event.set()

        if self._promoter is not None:
            self._promoter.stop()
        if self._watcher is not None:
            self._watcher.stop()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("Stopped watching %s", self._root)

    def __enter__(self) -> SiaFolder:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    # === Startup reconciliation ===

    def reconcile(self) -> None:
        """Seed the index from disk and upload what the renter lacks."""
        self.scan()
        logger.info("Uploading files missing from Sia")
        self.upload_non_existing()
        logger.info("Uploading changed files")
        self.upload_changed()

    def _walk(self, top: Path) -> Iterator[tuple[Path, list[Path], list[Path]]]:
        """os.walk below top, skipping ignored entries. Errors propagate."""
        for dirpath, dirnames, filenames in os.walk(top, onerror=_raise):
            base = Path(dirpath)
            dirnames[:] = [
                d for d in dirnames if not self._ignore.should_ignore(base / d, self._root)
            ]
            files = [
                base / f
                for f in filenames
                if not self._ignore.should_ignore(base / f, self._root)
            ]
            yield base, [base / d for d in dirnames], files

    def scan(self) -> None:
        """Register every subdirectory and fingerprint every file.

        Raises:
            OSError: If any entry cannot be read.
        """
        for _, dirs, files in self._walk(self._root):
            for directory in dirs:
                logger.debug("Found directory %s", directory)
                self._register_dir(directory)
            for file in files:
                key = self.relative(file)
                self._index.set_file(key, self._fingerprint(file))
                logger.debug("Indexed %s", key)
        logger.info(
            "Indexed %d files in %d directories",
            len(self._index),
            len(self._index.dirs()),
        )

    def upload_non_existing(self) -> int:
        """Upload every indexed file absent from both namespaces.

        Returns:
            Number of files uploaded.

        Raises:
            APIError: On the first listing or upload failure.
        """
        staging = self._config.staging_dir
        production = self._config.production_dir
        remote = {f.path for f in self._client.list_files([staging, production])}

        uploaded = 0
        for key in self._index.files():
            if self.remote_path(key, Namespace.STAGING) in remote:
                self._index.set_namespace(key, Namespace.STAGING)
            elif self.remote_path(key, Namespace.PRODUCTION) in remote:
                self._index.set_namespace(key, Namespace.PRODUCTION)
            else:
                self.handle_create(key)
                uploaded += 1
        return uploaded

    def upload_changed(self) -> int:
        """Re-upload staged files whose remote size differs from disk.

        Files only present in production are left alone.

        Returns:
            Number of files re-uploaded.

        Raises:
            APIError: On listing or upload failure.
            OSError: If a local file cannot be read.
        """
        staging = self._config.staging_dir
        remote = {
            strip_prefix(f.path, staging): f
            for f in self._client.list_files([staging])
        }

        changed = 0
        for key in self._index.files():
            remote_file = remote.get(key)
            if remote_file is None:
                continue
            if (self._root / key).stat().st_size == remote_file.size:
                continue
            # Baseline on the remote size so handle_write sees the difference
            self._index.set_file(key, size_baseline(remote_file.size), Namespace.STAGING)
            if self.handle_write(key):
                changed += 1
        return changed

    # === Handlers ===

    def handle_create(self, path: Path | str) -> None:
        """Upload a file to staging and record its fingerprint.

        A file the index places in production is deleted there first,
        unless in archive mode.

        Raises:
            OSError: If the file cannot be read.
            APIError: If the upload fails.
        """
        key = self.relative(path)
        local = self._root / key
        fingerprint = self._fingerprint(local)
        remote = self.remote_path(key)

        entry = self._index.get_file(key)
        if (
            entry is not None
            and entry.namespace is Namespace.PRODUCTION
            and not self._config.archive
        ):
            # Replaced in place: the promoted copy is stale
            self._delete_remote(key, Namespace.PRODUCTION)
            self._index.set_namespace(key, Namespace.STAGING)

        if self._config.dry_run:
            logger.info("[dry-run] would upload %s as %s", local, remote)
        else:
            logger.info("Uploading %s as %s", local, remote)
            self._client.upload_file(
                str(local),
                remote,
                self._config.data_pieces,
                self._config.parity_pieces,
            )
            self._stats.uploads += 1

        self._index.set_file(key, fingerprint, Namespace.STAGING)

    def handle_remove(
        self,
        path: Path | str,
        namespace: Namespace | None = None,
    ) -> None:
        """Delete a file's remote copy and drop it from the index.

        Args:
            path: Local path or index key.
            namespace: Namespace to delete from. Defaults to the one the
                index records for the file.

        Raises:
            APIError: If the delete fails; the index entry is kept.
        """
        key = self.relative(path)
        if namespace is None:
            entry = self._index.get_file(key)
            namespace = entry.namespace if entry else Namespace.STAGING
        self._delete_remote(key, namespace)
        self._index.remove_file(key)

    def _delete_remote(self, key: str, namespace: Namespace) -> None:
        """Delete the remote copy of key. A copy already gone counts as deleted."""
        remote = self.remote_path(key, namespace)
        if self._config.dry_run:
            logger.info("[dry-run] would delete %s", remote)
            return

        logger.info("Deleting %s", remote)
        try:
            self._client.delete_file(remote)
        except APIError as e:
            if NO_FILE_KNOWN not in str(e):
                raise
            logger.info("%s was already gone from Sia", remote)
            return
        self._stats.deletes += 1

    def handle_write(self, path: Path | str) -> bool:
        """Re-upload an indexed file whose fingerprint changed.

        Writes to files the index does not know are ignored.

        Returns:
            True if the file was re-uploaded.

        Raises:
            OSError: If the file cannot be read.
            APIError: If the delete or upload fails. The index then keeps
                the previous fingerprint.
        """
        key = self.relative(path)
        entry = self._index.get_file(key)
        if entry is None:
            logger.debug("Write to unindexed %s ignored", key)
            return False

        fingerprint = self._fingerprint(self._root / key)
        if fingerprint == entry.fingerprint:
            return False

        logger.info("Change in %s detected, reuploading", key)
        if not self._config.archive:
            self.handle_remove(key)
        try:
            self.handle_create(key)
        except APIError:
            # Keep the old fingerprint so the next write retries
            self._index.set_file(key, entry.fingerprint, entry.namespace)
            raise
        return True

    def create_with_retry(self, path: Path | str) -> bool:
        """Upload a created file, recovering from a stale remote copy.

        A create notification can arrive for a file that is already in the
        renter (for instance uploaded during startup). When the first upload
        fails the remote copy is checked and, outside archive mode, deleted
        before one more attempt.

        Returns:
            True if an attempt succeeded.

        Raises:
            OSError: If the file cannot be read.
        """
        key = self.relative(path)
        try:
            self.handle_create(key)
            return True
        except APIError as e:
            logger.warning("Upload of %s failed (%s), retrying", key, e)
            self._stats.retries += 1

        remote = self.remote_path(key)
        try:
            exists = self._client.file_exists(remote)
        except APIError as e:
            logger.error("Could not check whether %s exists: %s", remote, e)
            exists = False

        if exists and not self._config.archive:
            try:
                self.handle_remove(key, Namespace.STAGING)
            except APIError as e:
                logger.error("Could not delete stale %s: %s", remote, e)

        try:
            self.handle_create(key)
        except APIError as e:
            logger.error("Retry of upload %s failed: %s", key, e)
            self._stats.errors += 1
            return False
        return True

    # === Directories ===

    def _register_dir(self, directory: Path) -> bool:
        """Watch a directory and record it. Returns False if already known."""
        key = self.relative(directory)
        if self._index.has_dir(key):
            return False
        if self._watcher is not None:
            self._watcher.watch(directory)
        self._index.set_dir_known(key)
        return True

    def _add_directory(self, directory: Path) -> None:
        """Register a directory that appeared after startup, with its contents.

        Entries created before the watch existed never produce events, so
        nested directories are registered and unindexed files uploaded here.
        Empty directories are never uploaded.
        """
        if not self._register_dir(directory):
            logger.debug("Directory %s already known", directory)
            return
        logger.info("New directory %s added to watcher", directory)

        for _, dirs, files in self._walk(directory):
            for sub in dirs:
                self._register_dir(sub)
            for file in files:
                if self._stop_event.is_set():
                    logger.debug("Stopping, %s left for the next start", directory)
                    return
                if self.relative(file) not in self._index:
                    self.create_with_retry(file)

    def _remove_directory(self, key: str) -> None:
        """Forget a deleted directory and anything still indexed beneath it."""
        for removed in self._index.remove_dir(key):
            if self._watcher is not None:
                self._watcher.unwatch(self._root / removed)
            logger.info("Directory %s removed from watcher", removed)

        # Moved-away directories produce no per-file events
        for file_key in self._index.files_under(key):
            if (self._root / file_key).exists():
                continue
            try:
                self.handle_remove(file_key)
            except APIError as e:
                logger.error("Failed to delete %s: %s", file_key, e)
                self._stats.errors += 1

    # === Dispatcher ===

    def dispatch(self, event: WatchEvent) -> None:
        """Apply one watcher event.

        Raises:
            OSError: If a local file cannot be read.
            APIError: If a remote operation fails outside the retry policy.
        """
        self._stats.events_processed += 1
        try:
            key = self.relative(event.path)
        except ValueError:
            logger.debug("Ignoring event outside the tree: %s", event)
            return

        if event.kind is EventKind.REMOVE:
            if self._index.has_dir(key):
                self._remove_directory(key)
            elif key in self._index:
                self.handle_remove(key)
            else:
                logger.debug("Remove of unindexed %s ignored", key)
            return

        if event.path.is_dir():
            self._add_directory(event.path)
            return

        if event.kind is EventKind.WRITE:
            self.handle_write(key)
        elif event.kind is EventKind.CREATE:
            logger.info("File creation detected, uploading %s", key)
            self.create_with_retry(key)

    def _run(self) -> None:
        """Main dispatcher loop."""
        watcher = self._watcher
        if watcher is None:
            return
        logger.debug("Dispatcher loop started")

        while not self._stop_event.is_set():
            item = watcher.get()
            if item is None or self._stop_event.is_set():
                break

            if isinstance(item, Exception):
                logger.error("Watcher error: %s", item)
                self._stats.watcher_errors += 1
                continue

            try:
                self.dispatch(item)
            except (OSError, APIError) as e:
                logger.error("Failed to handle %s: %s", item, e)
                self._stats.errors += 1
            except Exception:
                logger.exception("Error processing %s", item)
                self._stats.errors += 1

        logger.debug("Dispatcher loop ended")

"""In-memory index of the synchronized tree.

LocalIndex maps file keys (paths relative to the root, forward slashes)
to FileEntry records and directory keys to a registered flag. It is never
persisted: every start rebuilds it from a local walk and a remote listing.

The dispatcher thread and the promotion job both touch the index, so every
accessor takes the same re-entrant lock.
"""

from __future__ import annotations

import threading

from siasync.sync.types import FileEntry, Namespace


def _under(key: str, directory: str) -> bool:
    return key.startswith(directory.rstrip("/") + "/")


class LocalIndex:
    """Thread-safe map of known files and directories."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._files: dict[str, FileEntry] = {}
        self._dirs: dict[str, bool] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._files

    # === Files ===

    def set_file(
        self,
        key: str,
        fingerprint: str,
        namespace: Namespace | None = None,
    ) -> None:
        """Record a file fingerprint.

        The namespace is kept when not given (new entries default to staging).
        """
        with self._lock:
            existing = self._files.get(key)
            if namespace is None:
                namespace = existing.namespace if existing else Namespace.STAGING
            self._files[key] = FileEntry(fingerprint=fingerprint, namespace=namespace)

    def get_file(self, key: str) -> FileEntry | None:
        """Return a copy of the entry for key, or None."""
        with self._lock:
            entry = self._files.get(key)
            if entry is None:
                return None
            return FileEntry(entry.fingerprint, entry.namespace)

    def get_fingerprint(self, key: str) -> str | None:
        """Return the recorded fingerprint for key, or None."""
        with self._lock:
            entry = self._files.get(key)
            return entry.fingerprint if entry else None

    def remove_file(self, key: str) -> FileEntry | None:
        """Drop a file, returning its entry if it was indexed."""
        with self._lock:
            return self._files.pop(key, None)

    def set_namespace(self, key: str, namespace: Namespace) -> None:
        """Change the namespace of an indexed file. Unknown keys are ignored."""
        with self._lock:
            entry = self._files.get(key)
            if entry is not None:
                entry.namespace = namespace

    def files(self) -> list[str]:
        """Snapshot of all file keys, sorted."""
        with self._lock:
            return sorted(self._files)

    def files_under(self, directory: str) -> list[str]:
        """Snapshot of file keys beneath a directory key."""
        with self._lock:
            return sorted(k for k in self._files if _under(k, directory))

    def mark_promoted(self, directory: str) -> int:
        """Move every file beneath directory to the production namespace.

        Returns:
            Number of entries updated.
        """
        count = 0
        with self._lock:
            for key, entry in self._files.items():
                if _under(key, directory) and entry.namespace != Namespace.PRODUCTION:
                    entry.namespace = Namespace.PRODUCTION
                    count += 1
        return count

    # === Directories ===

    def set_dir_known(self, key: str) -> None:
        """Record a directory as registered with the watcher."""
        with self._lock:
            self._dirs[key] = True

    def has_dir(self, key: str) -> bool:
        """Check whether a directory is registered."""
        with self._lock:
            return self._dirs.get(key, False)

    def remove_dir(self, key: str) -> list[str]:
        """Drop a directory and every directory nested in it.

        Returns:
            The removed directory keys, deepest first.
        """
        with self._lock:
            removed = [d for d in self._dirs if d == key or _under(d, key)]
            for d in removed:
                del self._dirs[d]
        return sorted(removed, key=lambda d: d.count("/"), reverse=True)

    def dirs(self) -> list[str]:
        """Snapshot of all directory keys, sorted."""
        with self._lock:
            return sorted(self._dirs)

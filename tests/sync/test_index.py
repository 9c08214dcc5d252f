"""Tests for the local state index."""

from __future__ import annotations

import threading

from siasync.sync.index import LocalIndex
from siasync.sync.types import FileEntry, Namespace


class TestFiles:
    """Tests for file entries."""

    def test_set_and_get(self) -> None:
        """Should store fingerprints with staging as default namespace."""
        index = LocalIndex()
        index.set_file("a.txt", "10")

        assert index.get_file("a.txt") == FileEntry("10", Namespace.STAGING)
        assert index.get_fingerprint("a.txt") == "10"
        assert "a.txt" in index
        assert len(index) == 1

    def test_get_missing(self) -> None:
        """Should return None for unknown keys."""
        index = LocalIndex()
        assert index.get_file("nope") is None
        assert index.get_fingerprint("nope") is None
        assert "nope" not in index

    def test_set_keeps_namespace(self) -> None:
        """Should keep the namespace when updating only the fingerprint."""
        index = LocalIndex()
        index.set_file("a.txt", "10", Namespace.PRODUCTION)
        index.set_file("a.txt", "20")

        assert index.get_file("a.txt") == FileEntry("20", Namespace.PRODUCTION)

    def test_get_returns_copy(self) -> None:
        """Should not let callers mutate the index through returned entries."""
        index = LocalIndex()
        index.set_file("a.txt", "10")
        entry = index.get_file("a.txt")
        assert entry is not None
        entry.fingerprint = "99"

        assert index.get_fingerprint("a.txt") == "10"

    def test_remove(self) -> None:
        """Should drop the entry and return it."""
        index = LocalIndex()
        index.set_file("a.txt", "10")

        assert index.remove_file("a.txt") == FileEntry("10")
        assert index.remove_file("a.txt") is None
        assert len(index) == 0

    def test_files_under(self) -> None:
        """Should list keys strictly beneath a directory."""
        index = LocalIndex()
        for key in ("sub/a", "sub/deep/b", "subway/c", "d"):
            index.set_file(key, "1")

        assert index.files_under("sub") == ["sub/a", "sub/deep/b"]
        assert index.files() == ["d", "sub/a", "sub/deep/b", "subway/c"]

    def test_mark_promoted(self) -> None:
        """Should move files beneath a directory to production."""
        index = LocalIndex()
        index.set_file("movies/Alien/a.mkv", "1")
        index.set_file("movies/Alien/b.srt", "1")
        index.set_file("movies/Aliens/c.mkv", "1")

        assert index.mark_promoted("movies/Alien") == 2
        assert index.get_file("movies/Alien/a.mkv").namespace is Namespace.PRODUCTION  # type: ignore[union-attr]
        assert index.get_file("movies/Aliens/c.mkv").namespace is Namespace.STAGING  # type: ignore[union-attr]
        assert index.mark_promoted("movies/Alien") == 0

    def test_set_namespace_unknown_key(self) -> None:
        """Should ignore namespace changes for unknown keys."""
        index = LocalIndex()
        index.set_namespace("nope", Namespace.PRODUCTION)
        assert index.get_file("nope") is None


class TestDirectories:
    """Tests for directory entries."""

    def test_known_dirs(self) -> None:
        """Should record registered directories."""
        index = LocalIndex()
        assert index.has_dir("sub") is False
        index.set_dir_known("sub")
        assert index.has_dir("sub") is True

    def test_remove_dir_prunes_nested(self) -> None:
        """Should remove nested directories, deepest first."""
        index = LocalIndex()
        for key in ("sub", "sub/a", "sub/a/b", "subway"):
            index.set_dir_known(key)

        assert index.remove_dir("sub") == ["sub/a/b", "sub/a", "sub"]
        assert index.dirs() == ["subway"]

    def test_remove_dir_keeps_files(self) -> None:
        """Should leave file entries alone."""
        index = LocalIndex()
        index.set_dir_known("sub")
        index.set_file("sub/a", "1")
        index.remove_dir("sub")

        assert "sub/a" in index


class TestConcurrency:
    """Tests for concurrent access."""

    def test_concurrent_writers(self) -> None:
        """Should not lose updates from concurrent threads."""
        index = LocalIndex()

        def writer(prefix: str) -> None:
            for i in range(500):
                index.set_file(f"{prefix}/{i}", str(i))
                index.mark_promoted(prefix)

        threads = [threading.Thread(target=writer, args=(p,)) for p in ("a", "b", "c")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(index) == 1500

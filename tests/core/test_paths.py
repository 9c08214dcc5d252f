"""Tests for local/remote path mapping."""

from __future__ import annotations

from pathlib import Path

import pytest

from siasync.core.paths import is_under, rebase, strip_prefix, to_relative, to_remote


class TestToRelative:
    """Tests for index key normalization."""

    def test_absolute_path(self, tmp_path: Path) -> None:
        """Should key absolute paths relative to root."""
        assert to_relative(tmp_path / "sub" / "b.txt", tmp_path) == "sub/b.txt"

    def test_relative_path(self, tmp_path: Path) -> None:
        """Should accept keys that are already relative."""
        assert to_relative("sub/b.txt", tmp_path) == "sub/b.txt"
        assert to_relative(Path("a.txt"), tmp_path) == "a.txt"

    def test_outside_root(self, tmp_path: Path) -> None:
        """Should refuse paths outside the root."""
        with pytest.raises(ValueError):
            to_relative(tmp_path.parent / "other.txt", tmp_path)
        with pytest.raises(ValueError):
            to_relative("../other.txt", tmp_path)

    def test_root_itself(self, tmp_path: Path) -> None:
        """Should refuse the root, which is never indexed."""
        with pytest.raises(ValueError):
            to_relative(tmp_path, tmp_path)


class TestRemoteMapping:
    """Tests for namespace prefixes."""

    def test_to_remote(self) -> None:
        """Should prefix keys with the namespace."""
        assert to_remote("fuse/staging", "sub/b.txt") == "fuse/staging/sub/b.txt"
        assert to_remote("/fuse/staging/", "a.txt") == "fuse/staging/a.txt"

    def test_to_remote_staging_root(self) -> None:
        """Should map '.' to the namespace itself."""
        assert to_remote("staging", ".") == "staging"

    def test_is_under(self) -> None:
        """Should only match paths strictly beneath the prefix."""
        assert is_under("fuse/staging/a.txt", "fuse/staging")
        assert not is_under("fuse/staging", "fuse/staging")
        assert not is_under("fuse/staging2/a.txt", "fuse/staging")

    def test_strip_prefix(self) -> None:
        """Should invert to_remote."""
        assert strip_prefix(to_remote("staging", "x/y.txt"), "staging") == "x/y.txt"
        with pytest.raises(ValueError):
            strip_prefix("production/x", "staging")

    def test_rebase_keeps_suffix(self) -> None:
        """Should swap the namespace and keep the suffix unchanged."""
        assert (
            rebase("fuse/staging/movies/Alien", "fuse/staging", "fuse/prod")
            == "fuse/prod/movies/Alien"
        )

    def test_rebase_outside_prefix(self) -> None:
        """Should refuse paths outside the old namespace."""
        with pytest.raises(ValueError):
            rebase("elsewhere/movies", "fuse/staging", "fuse/prod")

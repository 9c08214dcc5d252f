"""Shared fixtures for SiaSync tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from siasync.core.config import SyncConfig
from siasync.sync.folder import SiaFolder
from tests.fakes import FakeRenter


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Empty synchronized folder."""
    folder = tmp_path / "media"
    folder.mkdir()
    return folder.resolve()


@pytest.fixture
def renter() -> FakeRenter:
    """Empty in-memory renter."""
    return FakeRenter()


@pytest.fixture
def make_config(root: Path) -> Callable[..., SyncConfig]:
    """Build a SyncConfig on the test folder with short remote prefixes."""

    def _make(**overrides: object) -> SyncConfig:
        values: dict[str, object] = {
            "root": root,
            "staging_dir": "staging",
            "production_dir": "production",
            "promotion_interval": 0.1,
        }
        values.update(overrides)
        return SyncConfig(**values)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def make_folder(
    make_config: Callable[..., SyncConfig],
    renter: FakeRenter,
) -> Callable[..., SiaFolder]:
    """Build a SiaFolder on the fake renter without starting it."""

    def _make(**overrides: object) -> SiaFolder:
        return SiaFolder(make_config(**overrides), renter, promote=False)

    return _make

"""Tests for the promotion scheduler."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from siasync.client.api import APIError
from siasync.core.config import SyncConfig
from siasync.sync.index import LocalIndex
from siasync.sync.promotion import PromotionScheduler
from siasync.sync.types import Namespace
from tests.fakes import FakeRenter, wait_for

ConfigFactory = Callable[..., SyncConfig]


@pytest.fixture
def config(make_config: ConfigFactory) -> SyncConfig:
    """Config promoting from staging/movies and staging/tv."""
    return make_config()


class TestRunOnce:
    """Tests for a single promotion pass."""

    def test_threshold_is_strict(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should only promote redundancy strictly above the threshold."""
        renter.health["staging/movies"] = [
            ("staging/movies/Alien", 1.0),
            ("staging/movies/Brazil", 1.01),
        ]
        scheduler = PromotionScheduler(renter, config)

        promoted = scheduler.run_once()

        assert promoted == ["production/movies/Brazil"]
        assert renter.renames == [("staging/movies/Brazil", "production/movies/Brazil")]
        assert scheduler.stats.promoted == 1

    def test_category_never_promoted(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should skip the first returned directory even when healthy."""
        renter.health["staging/tv"] = [("staging/tv/Show", 3.0)]
        scheduler = PromotionScheduler(renter, config)

        scheduler.run_once()

        assert ("staging/tv", "production/tv") not in renter.renames
        assert renter.renames == [("staging/tv/Show", "production/tv/Show")]

    def test_queries_every_category(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should ask for each configured category under staging."""
        PromotionScheduler(renter, config).run_once()

        assert renter.calls_of("get_dir") == [("staging/movies",), ("staging/tv",)]

    def test_rename_failure_does_not_block_others(
        self, config: SyncConfig, renter: FakeRenter
    ) -> None:
        """Should log a failed rename and continue with the next child."""
        renter.health["staging/movies"] = [
            ("staging/movies/A", 2.0),
            ("staging/movies/B", 2.0),
        ]
        renter.fail_next("rename")
        scheduler = PromotionScheduler(renter, config)

        promoted = scheduler.run_once()

        assert promoted == ["production/movies/B"]
        assert len(renter.renames) == 2
        assert scheduler.stats.failures == 1

    def test_category_failure_continues(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should move on to the next category when one cannot be read."""
        renter.health["staging/tv"] = [("staging/tv/Show", 2.0)]
        renter.fail_next("get_dir", APIError("no such directory", 400))
        scheduler = PromotionScheduler(renter, config)

        promoted = scheduler.run_once()

        assert promoted == ["production/tv/Show"]
        assert scheduler.stats.failures == 1
        assert scheduler.stats.ticks == 1

    def test_updates_index(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should flip indexed files below a promoted directory to production."""
        index = LocalIndex()
        index.set_file("movies/Alien/a.mkv", "1")
        index.set_file("movies/Aliens/b.mkv", "1")
        renter.health["staging/movies"] = [("staging/movies/Alien", 2.0)]

        PromotionScheduler(renter, config, index).run_once()

        promoted = index.get_file("movies/Alien/a.mkv")
        untouched = index.get_file("movies/Aliens/b.mkv")
        assert promoted is not None and promoted.namespace is Namespace.PRODUCTION
        assert untouched is not None and untouched.namespace is Namespace.STAGING

    def test_dry_run(self, make_config: ConfigFactory, renter: FakeRenter) -> None:
        """Should report but not rename in dry-run mode."""
        renter.health["staging/movies"] = [("staging/movies/Alien", 2.0)]
        scheduler = PromotionScheduler(renter, make_config(dry_run=True))

        assert scheduler.run_once() == ["production/movies/Alien"]
        assert renter.renames == []
        assert scheduler.stats.promoted == 0

    def test_no_categories(self, make_config: ConfigFactory, renter: FakeRenter) -> None:
        """Should do nothing without categories."""
        scheduler = PromotionScheduler(renter, make_config(categories=()))

        assert scheduler.run_once() == []
        assert renter.calls == []


class TestPromote:
    """Tests for promoting a single directory."""

    def test_rebases_suffix(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should keep the path below staging unchanged under production."""
        renter.files["staging/tv/Show/s01/e01.mkv"] = 3

        new_path = PromotionScheduler(renter, config).promote("staging/tv/Show")

        assert new_path == "production/tv/Show"
        assert renter.files == {"production/tv/Show/s01/e01.mkv": 3}

    def test_outside_staging(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should refuse paths outside the staging prefix."""
        with pytest.raises(ValueError):
            PromotionScheduler(renter, config).promote("elsewhere/Show")

        assert renter.renames == []

    def test_rename_error_propagates(self, config: SyncConfig) -> None:
        """Should surface rename failures to the caller."""
        client = MagicMock()
        client.rename_path.side_effect = APIError("directory already exists", 400)

        with pytest.raises(APIError):
            PromotionScheduler(client, config).promote("staging/tv/Show")

        client.rename_path.assert_called_once_with(
            "staging/tv/Show", "production/tv/Show", is_dir=True
        )


class TestSchedule:
    """Tests for the background schedule."""

    def test_start_and_stop(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should promote on its own and stop cleanly."""
        renter.health["staging/movies"] = [("staging/movies/Alien", 2.0)]
        scheduler = PromotionScheduler(renter, config)

        scheduler.start()
        try:
            assert scheduler.is_running
            assert wait_for(lambda: renter.renames != [])
        finally:
            scheduler.stop()

        assert not scheduler.is_running
        assert renter.renames[0] == ("staging/movies/Alien", "production/movies/Alien")

    def test_job_survives_errors(self, config: SyncConfig) -> None:
        """Should log unexpected errors instead of raising from the job."""
        client = MagicMock()
        client.get_directory.side_effect = RuntimeError("boom")
        scheduler = PromotionScheduler(client, config)

        scheduler._promotion_job()

        assert scheduler.stats.ticks == 1

    def test_stop_without_start(self, config: SyncConfig, renter: FakeRenter) -> None:
        """Should allow stopping a scheduler that never started."""
        scheduler = PromotionScheduler(renter, config)
        scheduler.stop()
        assert not scheduler.is_running

"""Promotion of healthy staging directories to production.

This module provides:
- PromotionScheduler: Periodic job renaming sufficiently repaired staging
  subdirectories into the production namespace

Every tick queries each configured category under staging. The first
directory the renter returns is the category itself and is never promoted;
each remaining child whose aggregate minimum redundancy is strictly above
the threshold is renamed to the same suffix under production. Failures are
logged per category and per child and never stop the schedule.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from siasync.client.api import APIError
from siasync.core.paths import rebase, strip_prefix, to_remote
from siasync.sync.types import PromotionStats

if TYPE_CHECKING:
    from siasync.core.config import SyncConfig
    from siasync.sync.folder import RemoteStore
    from siasync.sync.index import LocalIndex

logger = logging.getLogger(__name__)


class PromotionScheduler:
    """Moves staging subdirectories to production once replicated."""

    def __init__(
        self,
        client: RemoteStore,
        config: SyncConfig,
        index: LocalIndex | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            client: Remote store client.
            config: Sync configuration (prefixes, interval, threshold,
                categories, dry run).
            index: Local index whose entries follow promoted directories.
        """
        self._client = client
        self._config = config
        self._index = index
        self._stats = PromotionStats()
        self._stopping = threading.Event()
        self._scheduler: BackgroundScheduler | None = None

    @property
    def stats(self) -> PromotionStats:
        """Get promotion statistics."""
        return self._stats

    @property
    def is_running(self) -> bool:
        """Check if the schedule is active."""
        return self._scheduler is not None

    def _promotion_job(self) -> None:
        """Job function for the scheduled check."""
        try:
            self.run_once()
        except Exception:
            logger.exception("Error during promotion check")

    def start(self) -> None:
        """Start checking every promotion_interval seconds."""
        if self._scheduler is not None:
            return

        self._stopping.clear()
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._promotion_job,
            trigger=IntervalTrigger(seconds=self._config.promotion_interval),
            id="promote_staging",
            name="Promote replicated staging directories",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Promotion scheduler started (every %.1fs, threshold %.2f, categories: %s)",
            self._config.promotion_interval,
            self._config.redundancy_threshold,
            ", ".join(self._config.categories) or "none",
        )

    def stop(self, wait: bool = True) -> None:
        """Stop the schedule, letting a running check finish its current call."""
        self._stopping.set()
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=wait)
            self._scheduler = None
            logger.info("Promotion scheduler stopped")

    def run_once(self) -> list[str]:
        """Check every category once (manual trigger).

        Returns:
            Production siapaths of the directories promoted.
        """
        self._stats.ticks += 1
        promoted: list[str] = []

        for category in self._config.categories:
            if self._stopping.is_set():
                break

            staging_dir = to_remote(self._config.staging_dir, category)
            try:
                health = self._client.get_directory(staging_dir)
            except APIError as e:
                logger.error("Error getting staging directory %s: %s", staging_dir, e)
                self._stats.failures += 1
                continue

            for child in health.children:
                if self._stopping.is_set():
                    break
                if child.aggregate_min_redundancy <= self._config.redundancy_threshold:
                    logger.debug(
                        "%s not ready (redundancy %.2f)",
                        child.path,
                        child.aggregate_min_redundancy,
                    )
                    continue
                try:
                    promoted.append(self.promote(child.path))
                except (APIError, ValueError) as e:
                    logger.error("Error moving %s to production: %s", child.path, e)
                    self._stats.failures += 1

        return promoted

    def promote(self, remote_path: str) -> str:
        """Rename a staging directory to the same suffix under production.

        Returns:
            The production siapath.

        Raises:
            ValueError: If remote_path is not under the staging prefix.
            APIError: If the rename fails.
        """
        staging = self._config.staging_dir
        new_path = rebase(remote_path, staging, self._config.production_dir)

        if self._config.dry_run:
            logger.info("[dry-run] would move %s to %s", remote_path, new_path)
            return new_path

        logger.info("Moving %s to %s", remote_path, new_path)
        self._client.rename_path(remote_path, new_path, is_dir=True)
        self._stats.promoted += 1

        if self._index is not None:
            moved = self._index.mark_promoted(strip_prefix(remote_path, staging))
            logger.debug("%d indexed files now map to production", moved)
        return new_path

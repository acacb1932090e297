"""
APScheduler wrapper running incremental syncs on an interval
"""

import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from connector.bootstrap import open_runner
from core.config import Settings, settings as default_settings
from core.exceptions import SyncException

logger = logging.getLogger(__name__)

JOB_ID = "incremental_sync"


class SyncScheduler:
    """
    Runs an incremental sync on a fixed interval.

    The job is registered with max_instances=1 and coalesce=True, so a
    slow run delays the next tick instead of overlapping it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner_factory: Optional[Callable[[], AbstractAsyncContextManager]] = None
    ):
        self.settings = settings or default_settings
        self.scheduler = AsyncIOScheduler()
        self.runner_factory = runner_factory or (lambda: open_runner(self.settings))

    async def run_sync_job(self):
        """Job to run one incremental sync"""
        logger.info("Scheduler: Starting incremental sync job")
        try:
            async with self.runner_factory() as runner:
                summary = await runner.run_incremental_sync(catalog_filter=self.settings.SYNC_CATALOG_ID)
                logger.info(
                    f"Scheduler: sync job finished with status {summary.status.value} "
                    f"({summary.succeeded} pushed, {summary.failed} failed)"
                )
        except SyncException as e:
            logger.error(
                f"Scheduler: sync job failed - {e.message}",
                extra={"error_context": e.to_dict()}
            )
        except Exception as e:
            logger.exception(f"Scheduler: sync job crashed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_sync_job,
            trigger=IntervalTrigger(minutes=self.settings.SYNC_INTERVAL_MINUTES),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Sync scheduler started (every {self.settings.SYNC_INTERVAL_MINUTES} minutes)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Sync scheduler shutdown requested")

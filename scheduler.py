"""APScheduler trigger that fires poll invocations on a cron schedule."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from pytz import timezone as pytz_timezone

from config import DeployWatchConfig

logger = logging.getLogger("deploywatch.scheduler")

POLL_JOB_ID = "deploywatch-poll"


class PollScheduler:
    """Runs the poll job on ``config.schedule`` inside the running event loop.

    Invocations never overlap: while one is still running, the next firing
    is skipped (``max_instances=1``) and missed firings collapse into one
    (``coalesce=True``).
    """

    def __init__(
        self,
        config: DeployWatchConfig,
        job: Callable[[], Awaitable[Any]],
    ) -> None:
        self._config = config
        self._job = job
        self._tz = pytz_timezone(config.timezone)
        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 30,
            },
            timezone=self._tz,
        )

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> Job:
        """Register the poll job and start the scheduler.

        Must be called from within a running event loop.
        """
        if not self.scheduler.running:
            self.scheduler.start()
        trigger = CronTrigger.from_crontab(self._config.schedule, timezone=self._tz)
        job = self.scheduler.add_job(
            self._job, trigger=trigger, id=POLL_JOB_ID, replace_existing=True
        )
        logger.info(
            "Polling %d project(s) on schedule %r (%s)",
            len(self._config.projects),
            self._config.schedule,
            self._config.timezone,
        )
        return job

    def shutdown(self, wait: bool = False) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler shut down")

    def next_run_time(self) -> Any:
        job = self.scheduler.get_job(POLL_JOB_ID)
        return getattr(job, "next_run_time", None)

"""
Tick Service - periodic trigger for the background worker
"""

import logging
from typing import Callable, Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from elkarbackup.exceptions import StorageError
from elkarbackup.models.results import DispatchReport, JobRunReport
from elkarbackup.services.dispatch.command_dispatcher import CommandDispatcher
from elkarbackup.services.jobs.job_queue_runner import JobQueueRunner
from elkarbackup.services.parameters.parameter_store import Parameters
from elkarbackup.utils.log_records import DatabaseLogHandler

logger = logging.getLogger(__name__)

DISPATCH_JOB_ID = "dispatch_messages"
RUN_JOBS_JOB_ID = "run_queued_jobs"


class TickService:
    """
    Drives the dispatcher and the job queue runner on an interval.

    Message dispatch and job execution are separate scheduler jobs, so a
    long backup never delays key updates or restores.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        runner: Optional[JobQueueRunner],
        parameters_provider: Callable[[], Parameters],
        interval_seconds: int = 60,
        log_handler: Optional[DatabaseLogHandler] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.runner = runner
        self.parameters_provider = parameters_provider
        self.interval_seconds = interval_seconds
        self.log_handler = log_handler

        executors = {"default": AsyncIOExecutor()}
        job_defaults = {"coalesce": True, "max_instances": 1}
        self.scheduler = AsyncIOScheduler(executors=executors, job_defaults=job_defaults)
        self._running = False

    def _background_disabled(self) -> bool:
        try:
            return self.parameters_provider().disable_background
        except (OSError, ValueError) as e:
            logger.error(f"Cannot read parameters, running tick anyway: {e}")
            return False

    async def dispatch_messages(self) -> Optional[DispatchReport]:
        if self._background_disabled():
            logger.info("Background processing is disabled, skipping dispatch")
            await self.flush_logs()
            return None
        try:
            return await self.dispatcher.dispatch_pending()
        except StorageError as e:
            logger.error(f"TICK: message dispatch failed: {e}")
            return None

    async def run_queued_jobs(self) -> Optional[JobRunReport]:
        if self.runner is None:
            return None
        if self._background_disabled():
            logger.info("Background processing is disabled, skipping job queue")
            return None
        try:
            return await self.runner.run_pending()
        except StorageError as e:
            logger.error(f"TICK: job queue run failed: {e}")
            return None
        finally:
            await self.flush_logs()

    async def flush_logs(self) -> None:
        """Persist buffered log records when the dispatcher has not run"""
        if self.log_handler is None:
            return
        try:
            await self.log_handler.flush_records()
        except StorageError as e:
            logger.error(f"Failed to persist log records: {e}")

    async def tick(self) -> None:
        """One complete cycle, used by the one-shot command line entry point"""
        await self.dispatch_messages()
        await self.run_queued_jobs()

    async def start(self) -> None:
        if self._running:
            logger.warning("Tick service is already running")
            return

        trigger = IntervalTrigger(seconds=self.interval_seconds)
        self.scheduler.add_job(
            self.dispatch_messages,
            trigger,
            id=DISPATCH_JOB_ID,
            name="Dispatch mailbox messages",
            replace_existing=True,
        )
        if self.runner is not None:
            self.scheduler.add_job(
                self.run_queued_jobs,
                trigger,
                id=RUN_JOBS_JOB_ID,
                name="Run queued jobs",
                replace_existing=True,
            )
        else:
            logger.warning("No job command configured, queued jobs will not run")

        self.scheduler.start()
        self._running = True
        logger.info(f"Tick service started with a {self.interval_seconds}s interval")

    async def stop(self) -> None:
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Tick service stopped")

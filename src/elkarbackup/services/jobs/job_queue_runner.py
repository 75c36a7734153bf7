"""
Job Queue Runner - executes queued jobs one at a time
"""

import asyncio
import logging
from typing import Optional

from elkarbackup.exceptions import JobAborted
from elkarbackup.models.results import JobRunReport
from elkarbackup.protocols.job_queue_protocol import (
    JobExecutorProtocol,
    JobQueueProtocol,
)
from elkarbackup.services.jobs.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class JobQueueRunner:
    """
    Consumes the job queue in ``list_ordered`` order.

    Entries aborted before they start are discarded without running. A
    running job gets a CancellationToken bound to its entry, and the entry is
    removed once execution ends, whatever the outcome.
    """

    def __init__(
        self,
        job_queue: JobQueueProtocol,
        executor: JobExecutorProtocol,
        abort_check_interval: float = 5.0,
    ) -> None:
        self.job_queue = job_queue
        self.executor = executor
        self.abort_check_interval = abort_check_interval
        self._lock = asyncio.Lock()
        self.current_job_id: Optional[int] = None

    async def run_pending(self) -> JobRunReport:
        if self._lock.locked():
            logger.info("Job queue runner is busy, skipping this tick")
            return JobRunReport(skipped=True)

        async with self._lock:
            report = JobRunReport()
            entries = await self.job_queue.list_ordered()
            if entries:
                logger.info(f"Job queue runner found {len(entries)} queued jobs")

            for entry in entries:
                job_id = entry.job_id
                if entry.aborted:
                    logger.info(f"Discarding job {job_id}, aborted before it started")
                    await self.job_queue.remove(job_id)
                    report.discarded.append(job_id)
                    continue

                await self._run_one(job_id, report)

            return report

    async def _run_one(self, job_id: int, report: JobRunReport) -> None:
        token = CancellationToken(
            job_id, self.job_queue, check_interval=self.abort_check_interval
        )
        self.current_job_id = job_id
        logger.info(f"Starting job {job_id}")
        try:
            success = await self.executor.execute(job_id, token)
            if token.cancelled:
                report.aborted.append(job_id)
                logger.info(f"Job {job_id} stopped after an abort request")
            elif success:
                report.completed.append(job_id)
                logger.info(f"Job {job_id} completed")
            else:
                report.failed.append(job_id)
                logger.warning(f"Job {job_id} failed")
        except JobAborted:
            report.aborted.append(job_id)
            logger.info(f"Job {job_id} aborted")
        except Exception as e:
            report.failed.append(job_id)
            logger.error(f"Job {job_id} raised an error: {e}")
        finally:
            self.current_job_id = None
            await self.job_queue.remove(job_id)

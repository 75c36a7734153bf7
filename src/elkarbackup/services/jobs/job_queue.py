"""
Job Queue - durable record of jobs that should run now
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from elkarbackup.exceptions import StorageError
from elkarbackup.models.database import Job, QueueEntry
from elkarbackup.models.results import QueueOutcome
from elkarbackup.protocols.job_queue_protocol import JobQueueProtocol
from elkarbackup.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

# Priority given to aborted entries so the worker reaches them first
ABORT_PRIORITY = 0


class JobQueue(JobQueueProtocol):
    """
    Queue of jobs with priority override and cooperative abort.

    There is at most one entry per job. The guarantee is an existence check
    before the insert, not a database constraint, so two enqueues racing from
    different processes can both succeed.
    """

    def __init__(self, async_session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.async_session_maker = async_session_maker

    async def enqueue(
        self, job_id: int, priority: Optional[int] = None
    ) -> Tuple[QueueOutcome, Optional[QueueEntry]]:
        """
        Queue a job for execution.

        Args:
            job_id: Job to run
            priority: Explicit priority; defaults to the job's own priority

        Returns:
            (QUEUED, new entry) or (ALREADY_QUEUED, existing entry)
        """
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(
                    select(QueueEntry).where(QueueEntry.job_id == job_id).limit(1)
                )
                existing = result.scalar_one_or_none()
                if existing is not None:
                    logger.info(f"Job {job_id} is already queued (entry {existing.id})")
                    return QueueOutcome.ALREADY_QUEUED, existing

                if priority is None:
                    job = await db.get(Job, job_id)
                    if job is None:
                        raise ValueError(f"Job {job_id} not found")
                    priority = job.priority

                entry = QueueEntry(
                    job_id=job_id,
                    priority=priority,
                    aborted=False,
                    created_at=now_utc(),
                )
                db.add(entry)
                await db.commit()
                await db.refresh(entry)
        except SQLAlchemyError as e:
            logger.error(f"Failed to enqueue job {job_id}: {e}")
            raise StorageError(f"Unable to enqueue job {job_id}: {e}") from e

        logger.info(f"Queued job {job_id} with priority {entry.priority}")
        return QueueOutcome.QUEUED, entry

    async def abort(self, job_id: int) -> QueueOutcome:
        """
        Request cancellation of a queued or running job.

        A missing entry means the job already ended; nothing is created.
        """
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(
                    select(QueueEntry).where(QueueEntry.job_id == job_id)
                )
                entries = list(result.scalars().all())
                if not entries:
                    logger.info(f"Abort requested for job {job_id} but it has ended")
                    return QueueOutcome.ALREADY_ENDED

                for entry in entries:
                    entry.aborted = True
                    entry.priority = ABORT_PRIORITY
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to abort job {job_id}: {e}")
            raise StorageError(f"Unable to abort job {job_id}: {e}") from e

        logger.info(f"Abort requested for job {job_id}")
        return QueueOutcome.ABORTING

    async def list_ordered(self) -> List[QueueEntry]:
        """Entries ordered by enqueue time, then priority"""
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(
                    select(QueueEntry).order_by(
                        QueueEntry.created_at.asc(),
                        QueueEntry.priority.asc(),
                        QueueEntry.id.asc(),
                    )
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list queue: {e}")
            raise StorageError(f"Unable to read queue: {e}") from e

    async def get_entry(self, job_id: int) -> Optional[QueueEntry]:
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(
                    select(QueueEntry)
                    .where(QueueEntry.job_id == job_id)
                    .order_by(QueueEntry.id.asc())
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read queue entry for job {job_id}: {e}")
            raise StorageError(f"Unable to read queue: {e}") from e

    async def is_aborted(self, job_id: int) -> bool:
        entry = await self.get_entry(job_id)
        return bool(entry is not None and entry.aborted)

    async def remove(self, job_id: int) -> bool:
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(
                    delete(QueueEntry).where(QueueEntry.job_id == job_id)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove queue entry for job {job_id}: {e}")
            raise StorageError(f"Unable to dequeue job {job_id}: {e}") from e

        return bool(result.rowcount)

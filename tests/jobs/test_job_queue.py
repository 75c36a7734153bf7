"""
Tests for JobQueue - enqueue, abort and ordering against a real database
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from elkarbackup.models.database import DEFAULT_JOB_PRIORITY, QueueEntry
from elkarbackup.models.results import QueueOutcome
from elkarbackup.services.jobs.job_queue import ABORT_PRIORITY, JobQueue
from elkarbackup.utils.datetime_utils import now_utc


async def count_entries(db: AsyncSession, job_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(QueueEntry).where(QueueEntry.job_id == job_id)
    )
    return result.scalar_one()


class TestJobQueueEnqueue:
    async def test_enqueue_creates_entry_with_job_priority(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client, priority=10)

        outcome, entry = await job_queue.enqueue(job.id)

        assert outcome == QueueOutcome.QUEUED
        assert entry is not None
        assert entry.job_id == job.id
        assert entry.priority == 10
        assert entry.aborted is False

    async def test_enqueue_uses_default_priority(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)

        _, entry = await job_queue.enqueue(job.id)

        assert entry.priority == DEFAULT_JOB_PRIORITY

    async def test_enqueue_explicit_priority_overrides_job(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client, priority=10)

        _, entry = await job_queue.enqueue(job.id, priority=3)

        assert entry.priority == 3

    async def test_enqueue_twice_keeps_single_entry(
        self, job_queue: JobQueue, test_db: AsyncSession, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)

        first_outcome, first_entry = await job_queue.enqueue(job.id)
        second_outcome, second_entry = await job_queue.enqueue(job.id)

        assert first_outcome == QueueOutcome.QUEUED
        assert second_outcome == QueueOutcome.ALREADY_QUEUED
        assert second_entry.id == first_entry.id
        assert await count_entries(test_db, job.id) == 1

    async def test_enqueue_unknown_job(self, job_queue: JobQueue) -> None:
        with pytest.raises(ValueError, match="Job 999 not found"):
            await job_queue.enqueue(999)


class TestJobQueueAbort:
    async def test_abort_marks_entry_and_raises_priority(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client, priority=50)
        await job_queue.enqueue(job.id)

        outcome = await job_queue.abort(job.id)

        assert outcome == QueueOutcome.ABORTING
        entry = await job_queue.get_entry(job.id)
        assert entry.aborted is True
        assert entry.priority == ABORT_PRIORITY
        assert await job_queue.is_aborted(job.id) is True

    async def test_abort_without_entry_creates_nothing(
        self, job_queue: JobQueue, test_db: AsyncSession, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)

        outcome = await job_queue.abort(job.id)

        assert outcome == QueueOutcome.ALREADY_ENDED
        assert await count_entries(test_db, job.id) == 0

    async def test_abort_is_repeatable(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)

        assert await job_queue.abort(job.id) == QueueOutcome.ABORTING
        assert await job_queue.abort(job.id) == QueueOutcome.ABORTING

    async def test_enqueue_after_abort_reports_already_queued(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)
        await job_queue.abort(job.id)

        outcome, entry = await job_queue.enqueue(job.id)

        assert outcome == QueueOutcome.ALREADY_QUEUED
        assert entry.aborted is True


class TestJobQueueOrdering:
    async def test_list_ordered_by_created_at_then_priority(
        self, job_queue: JobQueue, test_db: AsyncSession, make_client, make_job
    ) -> None:
        client = await make_client()
        early = await make_job(client, name="early")
        late_low = await make_job(client, name="late-low")
        late_high = await make_job(client, name="late-high")

        base = now_utc()
        test_db.add_all(
            [
                QueueEntry(job_id=late_low.id, priority=20, created_at=base),
                QueueEntry(job_id=late_high.id, priority=5, created_at=base),
                QueueEntry(
                    job_id=early.id, priority=100, created_at=base - timedelta(minutes=1)
                ),
            ]
        )
        await test_db.commit()

        entries = await job_queue.list_ordered()

        assert [e.job_id for e in entries] == [early.id, late_high.id, late_low.id]

    async def test_list_ordered_empty(self, job_queue: JobQueue) -> None:
        assert await job_queue.list_ordered() == []

    async def test_remove_deletes_entry(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)

        assert await job_queue.remove(job.id) is True
        assert await job_queue.get_entry(job.id) is None
        assert await job_queue.remove(job.id) is False

    async def test_is_aborted_without_entry(self, job_queue: JobQueue) -> None:
        assert await job_queue.is_aborted(42) is False

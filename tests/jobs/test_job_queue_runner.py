"""
Tests for JobQueueRunner - consuming the queue and reporting outcomes
"""

import asyncio
from unittest.mock import AsyncMock, Mock

from elkarbackup.exceptions import JobAborted
from elkarbackup.models.results import QueueOutcome
from elkarbackup.services.jobs.cancellation import CancellationToken
from elkarbackup.services.jobs.job_queue import JobQueue
from elkarbackup.services.jobs.job_queue_runner import JobQueueRunner


class TestJobQueueRunner:
    async def test_runs_entries_in_order_and_removes_them(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        first = await make_job(client, name="first")
        second = await make_job(client, name="second")
        await job_queue.enqueue(first.id)
        await job_queue.enqueue(second.id)

        executor = AsyncMock()
        executor.execute.return_value = True
        runner = JobQueueRunner(job_queue, executor)

        report = await runner.run_pending()

        assert report.completed == [first.id, second.id]
        assert [call.args[0] for call in executor.execute.await_args_list] == [
            first.id,
            second.id,
        ]
        assert await job_queue.list_ordered() == []

    async def test_failed_job_is_reported_and_removed(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)

        executor = AsyncMock()
        executor.execute.return_value = False
        runner = JobQueueRunner(job_queue, executor)

        report = await runner.run_pending()

        assert report.failed == [job.id]
        assert await job_queue.get_entry(job.id) is None

    async def test_executor_exception_counts_as_failure(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)

        executor = AsyncMock()
        executor.execute.side_effect = RuntimeError("boom")
        runner = JobQueueRunner(job_queue, executor)

        report = await runner.run_pending()

        assert report.failed == [job.id]
        assert runner.current_job_id is None
        assert await job_queue.get_entry(job.id) is None

    async def test_aborted_entry_is_discarded_without_running(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)
        await job_queue.abort(job.id)

        executor = AsyncMock()
        runner = JobQueueRunner(job_queue, executor)

        report = await runner.run_pending()

        assert report.discarded == [job.id]
        executor.execute.assert_not_awaited()
        assert await job_queue.get_entry(job.id) is None

    async def test_abort_while_running_is_observed(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)

        async def execute(job_id: int, token: CancellationToken) -> bool:
            assert await job_queue.abort(job_id) == QueueOutcome.ABORTING
            await token.raise_if_cancelled()
            return True

        executor = AsyncMock()
        executor.execute.side_effect = execute
        runner = JobQueueRunner(job_queue, executor, abort_check_interval=0)

        report = await runner.run_pending()

        assert report.aborted == [job.id]
        assert report.completed == []
        assert await job_queue.get_entry(job.id) is None

    async def test_job_aborted_exception_is_reported(
        self, job_queue: JobQueue, make_client, make_job
    ) -> None:
        client = await make_client()
        job = await make_job(client)
        await job_queue.enqueue(job.id)

        executor = AsyncMock()
        executor.execute.side_effect = JobAborted(job.id)
        runner = JobQueueRunner(job_queue, executor)

        report = await runner.run_pending()

        assert report.aborted == [job.id]

    async def test_concurrent_run_is_skipped(self) -> None:
        release = asyncio.Event()
        job_queue = AsyncMock()
        entry = Mock()
        entry.job_id = 1
        entry.aborted = False
        job_queue.list_ordered.return_value = [entry]

        async def execute(job_id: int, token: CancellationToken) -> bool:
            await release.wait()
            return True

        executor = AsyncMock()
        executor.execute.side_effect = execute
        runner = JobQueueRunner(job_queue, executor)

        first = asyncio.create_task(runner.run_pending())
        await asyncio.sleep(0)
        while runner.current_job_id is None:
            await asyncio.sleep(0)

        second = await runner.run_pending()
        release.set()
        first_report = await first

        assert second.skipped is True
        assert first_report.completed == [1]
        job_queue.remove.assert_awaited_once_with(1)

    async def test_empty_queue(self, job_queue: JobQueue) -> None:
        executor = AsyncMock()
        runner = JobQueueRunner(job_queue, executor)

        report = await runner.run_pending()

        assert report.completed == []
        assert report.skipped is False
        executor.execute.assert_not_awaited()

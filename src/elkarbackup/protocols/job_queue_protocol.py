"""
Protocols for the job queue and for whatever executes queued jobs
"""

from typing import TYPE_CHECKING, List, Optional, Protocol, Tuple

from elkarbackup.models.database import QueueEntry
from elkarbackup.models.results import QueueOutcome

if TYPE_CHECKING:
    from elkarbackup.services.jobs.cancellation import CancellationToken


class JobQueueProtocol(Protocol):
    """Durable record of jobs scheduled to run now"""

    async def enqueue(
        self, job_id: int, priority: Optional[int] = None
    ) -> Tuple[QueueOutcome, Optional[QueueEntry]]:
        """Queue a job unless it is already queued"""
        ...

    async def abort(self, job_id: int) -> QueueOutcome:
        """Flag a queued or running job for cooperative cancellation"""
        ...

    async def list_ordered(self) -> List[QueueEntry]:
        """Entries by enqueue time, then priority"""
        ...

    async def get_entry(self, job_id: int) -> Optional[QueueEntry]:
        """Queue entry for a job, if any"""
        ...

    async def is_aborted(self, job_id: int) -> bool:
        """Whether an abort was requested for the job"""
        ...

    async def remove(self, job_id: int) -> bool:
        """Drop the entry of a started or finished job"""
        ...


class JobExecutorProtocol(Protocol):
    """Runs one backup job to completion"""

    async def execute(self, job_id: int, token: "CancellationToken") -> bool:
        """Execute the job, observing the token at safe points. Returns success."""
        ...

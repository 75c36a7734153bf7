"""
Cooperative cancellation for running jobs.
"""

import logging
import time
from typing import Callable, Optional

from elkarbackup.exceptions import JobAborted
from elkarbackup.protocols.job_queue_protocol import JobQueueProtocol

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Observes the abort flag of one job's queue entry.

    The flag lives in the database, so it is re-read at most once per
    ``check_interval`` seconds no matter how often the running job asks.
    Once cancelled, the token stays cancelled.
    """

    def __init__(
        self,
        job_id: int,
        job_queue: JobQueueProtocol,
        check_interval: float = 5.0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.job_id = job_id
        self.job_queue = job_queue
        self.check_interval = check_interval
        self._clock = clock or time.monotonic
        self._last_check: Optional[float] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Last known state, without touching the database"""
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    async def is_cancelled(self) -> bool:
        if self._cancelled:
            return True

        now = self._clock()
        if self._last_check is not None and now - self._last_check < self.check_interval:
            return False

        self._last_check = now
        if await self.job_queue.is_aborted(self.job_id):
            logger.info(f"Job {self.job_id} observed its abort flag")
            self._cancelled = True
        return self._cancelled

    async def raise_if_cancelled(self) -> None:
        """Safe point: stop the job here if an abort was requested."""
        if await self.is_cancelled():
            raise JobAborted(self.job_id)

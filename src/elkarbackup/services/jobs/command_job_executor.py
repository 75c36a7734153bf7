"""
Executes a queued job by running an external command for it.
"""

import asyncio
import logging
import shlex
from typing import Callable, Coroutine, List

from elkarbackup.exceptions import JobAborted
from elkarbackup.protocols.job_queue_protocol import JobExecutorProtocol
from elkarbackup.services.jobs.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class CommandJobExecutor(JobExecutorProtocol):
    """
    Runs ``command_template`` with ``{job_id}`` substituted, e.g.
    ``"elkarbackup-run-job {job_id}"``.

    While the process runs the cancellation token is polled every
    ``poll_interval`` seconds; an abort terminates the process.
    """

    def __init__(
        self,
        command_template: str,
        poll_interval: float = 1.0,
        terminate_timeout: float = 5.0,
        subprocess_executor: Callable[
            ..., Coroutine[None, None, asyncio.subprocess.Process]
        ] = asyncio.create_subprocess_exec,
    ) -> None:
        if not command_template.strip():
            raise ValueError("A job command template is required")
        self.command_template = command_template
        self.poll_interval = poll_interval
        self.terminate_timeout = terminate_timeout
        self.subprocess_executor = subprocess_executor

    def build_command(self, job_id: int) -> List[str]:
        return shlex.split(self.command_template.format(job_id=job_id))

    async def execute(self, job_id: int, token: CancellationToken) -> bool:
        await token.raise_if_cancelled()

        command = self.build_command(job_id)
        logger.info(f"Starting job {job_id}: {command[0]}")
        process = await self.subprocess_executor(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )

        while True:
            try:
                return_code = await asyncio.wait_for(
                    process.wait(), timeout=self.poll_interval
                )
                break
            except asyncio.TimeoutError:
                if await token.is_cancelled():
                    await self.terminate_process(process)
                    raise JobAborted(job_id)

        logger.info(f"Job {job_id} process exited with return code {return_code}")
        return return_code == 0

    async def terminate_process(self, process: asyncio.subprocess.Process) -> None:
        """Terminate a process gracefully, then force kill if needed"""
        if process.returncode is not None:
            return

        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout)
            logger.info("Job process terminated gracefully")
        except asyncio.TimeoutError:
            logger.warning("Job process did not terminate gracefully, force killing")
            process.kill()
            await process.wait()

"""
Runs external programs (ssh-keygen, rsync, job commands) as subprocesses.
"""

import asyncio
import logging
import os
import time
from typing import Dict, List, Optional

from elkarbackup.protocols.command_protocols import CommandResult, CommandRunnerProtocol

logger = logging.getLogger(__name__)


class SimpleCommandRunner(CommandRunnerProtocol):
    """Runs a command to completion and captures its output"""

    def __init__(self, default_timeout: Optional[int] = None) -> None:
        self.default_timeout = default_timeout

    async def run_command(
        self,
        command: List[str],
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        timeout = timeout if timeout is not None else self.default_timeout
        start_time = time.monotonic()

        merged_env = os.environ.copy()
        if env:
            merged_env.update(env)

        logger.info(f"Running command: {command[0]} ({len(command) - 1} args)")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=merged_env,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error(f"Failed to start {command[0]}: {e}")
            return CommandResult(
                success=False,
                return_code=-1,
                stdout="",
                stderr="",
                duration=time.monotonic() - start_time,
                error=str(e),
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Command {command[0]} timed out after {timeout}s")
            process.kill()
            await process.wait()
            return CommandResult(
                success=False,
                return_code=-1,
                stdout="",
                stderr="",
                duration=time.monotonic() - start_time,
                error=f"Command timed out after {timeout} seconds",
            )

        duration = time.monotonic() - start_time
        return_code = process.returncode if process.returncode is not None else -1
        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")

        success = return_code == 0
        if success:
            logger.info(f"Command {command[0]} completed in {duration:.2f}s")
        else:
            logger.warning(
                f"Command {command[0]} failed with return code {return_code}: {stderr_text.strip()}"
            )

        return CommandResult(
            success=success,
            return_code=return_code,
            stdout=stdout_text,
            stderr=stderr_text,
            duration=duration,
            error=stderr_text.strip() if not success else None,
        )

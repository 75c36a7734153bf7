"""
Protocol interfaces for command execution services.
"""

from typing import Dict, List, Optional, Protocol


class CommandResult:
    """Result of a command execution."""

    def __init__(
        self,
        success: bool,
        return_code: int,
        stdout: str,
        stderr: str,
        duration: float,
        error: Optional[str] = None,
    ) -> None:
        self.success = success
        self.return_code = return_code
        self.stdout = stdout
        self.stderr = stderr
        self.duration = duration
        self.error = error


class CommandRunnerProtocol(Protocol):
    """Protocol for command execution services."""

    async def run_command(
        self,
        command: List[str],
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """Execute a command and return the result."""
        ...

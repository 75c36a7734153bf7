"""
Exception types shared by the mailbox, the job queue and the API layer.
"""

from typing import Optional


class ElkarBackupError(Exception):
    """Base class for all service errors."""


class AuthorizationError(ElkarBackupError):
    """The caller is not allowed to perform the requested action."""


class StorageError(ElkarBackupError):
    """The persistence layer failed or is unavailable."""


class InvalidCommandError(ElkarBackupError):
    """A message payload could not be decoded into a known command."""

    def __init__(self, message: str, payload: Optional[str] = None) -> None:
        super().__init__(message)
        self.payload = payload


class HandlerFailure(ElkarBackupError):
    """A command handler could not complete its side effect."""

    def __init__(self, command: str, message: str) -> None:
        super().__init__(f"{command}: {message}")
        self.command = command


class JobAborted(ElkarBackupError):
    """Raised at a safe point once an abort was requested for a running job."""

    def __init__(self, job_id: int) -> None:
        super().__init__(f"Job {job_id} aborted")
        self.job_id = job_id

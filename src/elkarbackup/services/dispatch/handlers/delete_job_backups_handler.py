"""
Handler for ``delete_job_backups``: removes the snapshots of a job or client.
"""

import asyncio
import logging
import os
import shutil
from typing import Callable, List

from elkarbackup.exceptions import HandlerFailure
from elkarbackup.models.commands import CommandName, DeleteJobBackupsCommand
from elkarbackup.services.parameters.parameter_store import Parameters

logger = logging.getLogger(__name__)


def backup_path(backup_dir: str, client_id: int, job_id: int | None = None) -> str:
    """Snapshot directory layout: <dir>/<%04d client>/<%04d job>"""
    client_dir = os.path.join(backup_dir, f"{client_id:04d}")
    if job_id is None:
        return client_dir
    return os.path.join(client_dir, f"{job_id:04d}")


class DeleteJobBackupsHandler:
    """
    Deletes backup directories in every configured backup location.

    Directories that do not exist are skipped, so replaying the same
    message is harmless.
    """

    def __init__(self, parameters_provider: Callable[[], Parameters]) -> None:
        self.parameters_provider = parameters_provider

    def target_paths(self, command: DeleteJobBackupsCommand) -> List[str]:
        return [
            backup_path(backup_dir, command.client, command.job)
            for backup_dir in self.parameters_provider().backup_dirs
        ]

    async def handle(self, command: DeleteJobBackupsCommand) -> None:
        for path in self.target_paths(command):
            if not os.path.isdir(path):
                logger.info(f"Nothing to delete at {path}")
                continue

            try:
                await asyncio.to_thread(shutil.rmtree, path)
            except OSError as e:
                raise HandlerFailure(
                    CommandName.DELETE_JOB_BACKUPS.value, f"cannot delete {path}: {e}"
                ) from e
            logger.info(f"Deleted backups at {path}")

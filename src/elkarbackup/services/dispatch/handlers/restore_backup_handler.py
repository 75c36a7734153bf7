"""
Handler for ``restore_backup``: copies a snapshot path back to a client.
"""

import logging
from typing import List

from elkarbackup.exceptions import HandlerFailure
from elkarbackup.models.commands import CommandName, RestoreBackupCommand
from elkarbackup.protocols.command_protocols import CommandRunnerProtocol

logger = logging.getLogger(__name__)


def build_restore_command(command: RestoreBackupCommand) -> List[str]:
    """
    Build the rsync invocation for a restore.

    An empty ``url`` means the target is the local machine, so no remote
    shell is involved.
    """
    rsync_command = ["rsync", "-aH", "--numeric-ids"]
    if command.url:
        ssh_command = "ssh"
        if command.ssh_args:
            ssh_command = f"ssh {command.ssh_args}"
        rsync_command.extend(["-e", ssh_command])
        target = f"{command.url}:{command.remote_path}"
    else:
        target = command.remote_path

    rsync_command.extend([command.source_path, target])
    return rsync_command


class RestoreBackupHandler:
    def __init__(self, command_runner: CommandRunnerProtocol) -> None:
        self.command_runner = command_runner

    async def handle(self, command: RestoreBackupCommand) -> None:
        rsync_command = build_restore_command(command)
        destination = command.url or "localhost"
        logger.info(
            f"Restoring {command.source_path} to {destination}:{command.remote_path}"
        )

        result = await self.command_runner.run_command(rsync_command)
        if not result.success:
            raise HandlerFailure(
                CommandName.RESTORE_BACKUP.value,
                f"rsync exited with {result.return_code}: {result.error or result.stderr}",
            )

        logger.info(f"Restore of {command.source_path} completed")

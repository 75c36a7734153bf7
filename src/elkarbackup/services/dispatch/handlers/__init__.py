"""
Command handlers and the default dispatch table.
"""

from typing import Callable

from elkarbackup.models.commands import CommandName
from elkarbackup.protocols.command_protocols import CommandRunnerProtocol
from elkarbackup.services.parameters.parameter_store import Parameters

from .authorized_keys_handler import UpdateAuthorizedKeysHandler
from .delete_job_backups_handler import DeleteJobBackupsHandler
from .keypair_handler import GenerateKeypairHandler
from .restore_backup_handler import RestoreBackupHandler


def build_default_handlers(
    command_runner: CommandRunnerProtocol,
    parameters_provider: Callable[[], Parameters],
) -> dict[CommandName, Callable]:
    return {
        CommandName.GENERATE_KEYPAIR: GenerateKeypairHandler(
            command_runner, parameters_provider
        ).handle,
        CommandName.UPDATE_AUTHORIZED_KEYS: UpdateAuthorizedKeysHandler(
            parameters_provider
        ).handle,
        CommandName.RESTORE_BACKUP: RestoreBackupHandler(command_runner).handle,
        CommandName.DELETE_JOB_BACKUPS: DeleteJobBackupsHandler(
            parameters_provider
        ).handle,
    }


__all__ = [
    "build_default_handlers",
    "GenerateKeypairHandler",
    "UpdateAuthorizedKeysHandler",
    "RestoreBackupHandler",
    "DeleteJobBackupsHandler",
]

"""
Handler for ``update_authorized_keys``.
"""

import logging
from typing import Callable

from elkarbackup.exceptions import HandlerFailure
from elkarbackup.models.commands import CommandName, UpdateAuthorizedKeysCommand
from elkarbackup.services.parameters.parameter_store import Parameters
from elkarbackup.utils.file_utils import atomic_write_text

logger = logging.getLogger(__name__)


class UpdateAuthorizedKeysHandler:
    """Replaces the authorized_keys file with the exact content of the command"""

    def __init__(self, parameters_provider: Callable[[], Parameters]) -> None:
        self.parameters_provider = parameters_provider

    async def handle(self, command: UpdateAuthorizedKeysCommand) -> None:
        path = self.parameters_provider().authorized_keys
        try:
            atomic_write_text(path, command.content, mode=0o600)
        except OSError as e:
            raise HandlerFailure(
                CommandName.UPDATE_AUTHORIZED_KEYS.value,
                f"cannot write {path}: {e}",
            ) from e

        key_count = len([line for line in command.content.splitlines() if line.strip()])
        logger.info(f"Updated {path} with {key_count} keys")

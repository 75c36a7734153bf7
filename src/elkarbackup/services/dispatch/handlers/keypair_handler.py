"""
Handler for ``generate_keypair``: replaces the worker's SSH key pair.
"""

import logging
import os
from typing import Callable

from elkarbackup.exceptions import HandlerFailure
from elkarbackup.models.commands import CommandName, GenerateKeypairCommand
from elkarbackup.protocols.command_protocols import CommandRunnerProtocol
from elkarbackup.services.parameters.parameter_store import Parameters

logger = logging.getLogger(__name__)

KEY_COMMENT = "Automatically generated key for elkarbackup."


class GenerateKeypairHandler:
    """Generates a passphrase-less RSA key pair at the configured path"""

    def __init__(
        self,
        command_runner: CommandRunnerProtocol,
        parameters_provider: Callable[[], Parameters],
    ) -> None:
        self.command_runner = command_runner
        self.parameters_provider = parameters_provider

    async def handle(self, command: GenerateKeypairCommand) -> None:
        parameters = self.parameters_provider()
        private_key = parameters.private_key

        os.makedirs(os.path.dirname(os.path.abspath(private_key)), exist_ok=True)
        # ssh-keygen refuses to overwrite without a prompt
        for path in (private_key, parameters.public_key):
            if os.path.exists(path):
                logger.info(f"Removing previous key {path}")
                os.unlink(path)

        result = await self.command_runner.run_command(
            ["ssh-keygen", "-t", "rsa", "-N", "", "-C", KEY_COMMENT, "-f", private_key]
        )
        if not result.success:
            raise HandlerFailure(
                CommandName.GENERATE_KEYPAIR.value,
                f"ssh-keygen failed: {result.error or result.stderr}",
            )

        logger.info(f"Generated new key pair at {private_key}")

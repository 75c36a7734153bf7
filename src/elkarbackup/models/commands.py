"""
Command kinds carried by mailbox messages.

Each message payload is a JSON object whose ``command`` field selects one of
the models below. Payloads are decoded once, at the dispatcher boundary, into
a typed command; handlers never see raw JSON.
"""

import json
from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from elkarbackup.exceptions import InvalidCommandError

# Prefix used by the legacy PHP producers, e.g. "elkarbackup:generate_keypair"
LEGACY_COMMAND_PREFIX = "elkarbackup:"


class CommandName(str, Enum):
    GENERATE_KEYPAIR = "generate_keypair"
    UPDATE_AUTHORIZED_KEYS = "update_authorized_keys"
    RESTORE_BACKUP = "restore_backup"
    DELETE_JOB_BACKUPS = "delete_job_backups"


class BaseCommand(BaseModel):
    # Producers may add fields the worker does not know about yet
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GenerateKeypairCommand(BaseCommand):
    command: Literal["generate_keypair"] = "generate_keypair"


class UpdateAuthorizedKeysCommand(BaseCommand):
    command: Literal["update_authorized_keys"] = "update_authorized_keys"
    content: str


class RestoreBackupCommand(BaseCommand):
    command: Literal["restore_backup"] = "restore_backup"
    url: str
    source_path: str = Field(alias="sourcePath", min_length=1)
    remote_path: str = Field(alias="remotePath", min_length=1)
    ssh_args: Optional[str] = Field(default="", alias="sshArgs")


class DeleteJobBackupsCommand(BaseCommand):
    command: Literal["delete_job_backups"] = "delete_job_backups"
    client: int
    job: Optional[int] = None


Command = Annotated[
    Union[
        GenerateKeypairCommand,
        UpdateAuthorizedKeysCommand,
        RestoreBackupCommand,
        DeleteJobBackupsCommand,
    ],
    Field(discriminator="command"),
]

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def normalize_command_name(name: str) -> str:
    """Strip the legacy namespace from a command tag."""
    if name.startswith(LEGACY_COMMAND_PREFIX):
        return name[len(LEGACY_COMMAND_PREFIX) :]
    return name


def decode_command(payload: str) -> Command:
    """
    Decode a message payload into a typed command.

    Args:
        payload: JSON text stored in a Message row

    Returns:
        The command variant selected by the ``command`` field

    Raises:
        InvalidCommandError: If the payload is not JSON, is not an object,
            names an unknown command or lacks a required field
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise InvalidCommandError(f"Payload is not valid JSON: {e}", payload)
    except RecursionError:
        raise InvalidCommandError("Payload is nested too deeply", payload)

    if not isinstance(data, dict):
        raise InvalidCommandError("Payload must be a JSON object", payload)

    name = data.get("command")
    if not isinstance(name, str) or not name:
        raise InvalidCommandError("Payload has no command name", payload)

    name = normalize_command_name(name)
    known = {member.value for member in CommandName}
    if name not in known:
        raise InvalidCommandError(f"Unknown command: {name}", payload)

    try:
        return _command_adapter.validate_python({**data, "command": name})
    except ValidationError as e:
        missing = ", ".join(
            ".".join(str(part) for part in error["loc"]) for error in e.errors()
        )
        raise InvalidCommandError(
            f"Invalid arguments for command {name}: {missing}", payload
        )


def encode_command(command: BaseCommand) -> str:
    """Serialize a command to the JSON payload stored in a Message row."""
    return command.model_dump_json(by_alias=True, exclude_none=True)


def payload_to_json(payload: Union[BaseCommand, Dict[str, object], str]) -> str:
    """Normalize anything accepted by the message store into JSON text."""
    if isinstance(payload, BaseCommand):
        return encode_command(payload)
    if isinstance(payload, str):
        return payload
    return json.dumps(payload)

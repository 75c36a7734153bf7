"""
Tests for decoding mailbox payloads into typed commands
"""

import json

import pytest

from elkarbackup.exceptions import InvalidCommandError
from elkarbackup.models.commands import (
    DeleteJobBackupsCommand,
    GenerateKeypairCommand,
    RestoreBackupCommand,
    UpdateAuthorizedKeysCommand,
    decode_command,
    encode_command,
    normalize_command_name,
)


class TestDecodeCommand:
    def test_generate_keypair(self) -> None:
        command = decode_command('{"command": "generate_keypair"}')
        assert isinstance(command, GenerateKeypairCommand)

    def test_legacy_prefix_is_accepted(self) -> None:
        command = decode_command(
            '{"command": "elkarbackup:update_authorized_keys", "content": "ssh-rsa AAA x\\n"}'
        )

        assert isinstance(command, UpdateAuthorizedKeysCommand)
        assert command.command == "update_authorized_keys"
        assert command.content == "ssh-rsa AAA x\n"

    def test_restore_backup_uses_wire_names(self) -> None:
        payload = json.dumps(
            {
                "command": "restore_backup",
                "url": "root@host",
                "sourcePath": "/backups/0001/0002/etc",
                "remotePath": "/tmp/restore",
                "sshArgs": "-p 2222",
            }
        )

        command = decode_command(payload)

        assert isinstance(command, RestoreBackupCommand)
        assert command.source_path == "/backups/0001/0002/etc"
        assert command.remote_path == "/tmp/restore"
        assert command.ssh_args == "-p 2222"

    def test_delete_job_backups_without_job(self) -> None:
        command = decode_command('{"command": "delete_job_backups", "client": 4}')

        assert isinstance(command, DeleteJobBackupsCommand)
        assert command.client == 4
        assert command.job is None

    def test_unknown_fields_are_ignored(self) -> None:
        command = decode_command('{"command": "generate_keypair", "requestedBy": 3}')
        assert isinstance(command, GenerateKeypairCommand)

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            "[1, 2, 3]",
            '{"content": "x"}',
            '{"command": ""}',
            '{"command": "format_disk"}',
        ],
    )
    def test_rejects_malformed_payloads(self, payload: str) -> None:
        with pytest.raises(InvalidCommandError) as exc_info:
            decode_command(payload)
        assert exc_info.value.payload == payload

    def test_missing_argument_is_named(self) -> None:
        with pytest.raises(InvalidCommandError, match="content"):
            decode_command('{"command": "update_authorized_keys"}')

    def test_empty_restore_path_is_rejected(self) -> None:
        payload = json.dumps(
            {
                "command": "restore_backup",
                "url": "",
                "sourcePath": "",
                "remotePath": "/tmp",
            }
        )
        with pytest.raises(InvalidCommandError):
            decode_command(payload)


class TestEncodeCommand:
    def test_restore_backup_is_encoded_with_wire_names(self) -> None:
        command = RestoreBackupCommand(
            url="root@host",
            source_path="/backups/0001/0002/etc",
            remote_path="/tmp/restore",
        )

        data = json.loads(encode_command(command))

        assert data["command"] == "restore_backup"
        assert data["sourcePath"] == "/backups/0001/0002/etc"
        assert data["remotePath"] == "/tmp/restore"
        assert "source_path" not in data

    def test_normalize_command_name(self) -> None:
        assert normalize_command_name("elkarbackup:generate_keypair") == "generate_keypair"
        assert normalize_command_name("generate_keypair") == "generate_keypair"

    def test_deeply_nested_payload_is_rejected(self) -> None:
        payload = "[" * 200000 + "]" * 200000

        with pytest.raises(InvalidCommandError) as exc_info:
            decode_command(payload)
        assert exc_info.value.payload == payload

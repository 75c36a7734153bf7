"""
Request-side producers of mailbox messages.

Each operation validates and authorizes the request, then leaves a command
in the message store for the background worker.
"""

import logging
import os
import posixpath
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from elkarbackup.config_module import TICK_COMMAND_TARGET
from elkarbackup.exceptions import StorageError
from elkarbackup.models.commands import (
    BaseCommand,
    DeleteJobBackupsCommand,
    GenerateKeypairCommand,
    RestoreBackupCommand,
    UpdateAuthorizedKeysCommand,
)
from elkarbackup.models.database import (
    BackupLocation,
    Client,
    Job,
    QueueEntry,
    User,
)
from elkarbackup.models.results import ActionResult
from elkarbackup.models.schemas import AuthorizedKey, RestoreRequest
from elkarbackup.protocols.message_store_protocol import MessageStoreProtocol
from elkarbackup.services.authorization_service import AuthorizationService
from elkarbackup.utils.links import client_link, job_link

logger = logging.getLogger(__name__)

MESSAGE_SOURCE = "MaintenanceService"


def serialize_authorized_keys(keys: List[AuthorizedKey]) -> str:
    """One ``<key> <comment>`` line per key, as sshd expects"""
    return "".join(f"{key.public_key} {key.comment}\n" for key in keys)


def build_source_path(
    backup_dir: str, client_id: int, job_id: int, path: str
) -> str:
    """
    Join a restore path onto a job's snapshot directory.

    Raises:
        ValueError: The normalized path leaves the job directory
    """
    job_dir = f"{backup_dir}/{client_id:04d}/{job_id:04d}"
    source_path = f"{job_dir}/{path}"
    job_root = posixpath.normpath(job_dir)
    normalized = posixpath.normpath(source_path)
    if normalized != job_root and not normalized.startswith(job_root + "/"):
        raise ValueError(f"Restore path escapes the job directory: {path}")
    return source_path


class MaintenanceService:
    def __init__(
        self,
        message_store: MessageStoreProtocol,
        authorization: AuthorizationService,
        url_prefix: str = "",
    ) -> None:
        self.message_store = message_store
        self.authorization = authorization
        self.url_prefix = url_prefix

    async def _send(self, command: BaseCommand) -> Optional[ActionResult]:
        """Store the command, or describe the storage failure"""
        try:
            await self.message_store.enqueue(
                MESSAGE_SOURCE, TICK_COMMAND_TARGET, command
            )
        except StorageError as e:
            logger.error(f"Unable to enqueue {command.command}: {e}")
            return ActionResult(error=True, msg=f"Unable to enqueue request: {e}")
        return None

    async def request_keypair_generation(self, user: Optional[User]) -> ActionResult:
        self.authorization.require_admin(user)

        failure = await self._send(GenerateKeypairCommand())
        if failure:
            return failure

        logger.info("Public key generation requested")
        return ActionResult(
            error=False,
            msg="Wait for key generation. It should be available in less than 2 minutes. Check logs if otherwise",
        )

    def read_public_key(self, user: Optional[User], public_key_path: str) -> str:
        """
        Contents of the public key produced by ``generate_keypair``.

        Raises:
            AuthorizationError: The caller is not an administrator
            ValueError: No key has been generated yet
        """
        self.authorization.require_admin(user)
        if not os.path.isfile(public_key_path):
            raise ValueError(f"Unable to find public key: {public_key_path}")
        with open(public_key_path, "r", encoding="utf-8") as f:
            return f.read()

    async def request_authorized_keys_update(
        self, user: Optional[User], keys: List[AuthorizedKey]
    ) -> ActionResult:
        self.authorization.require_admin(user)

        content = serialize_authorized_keys(keys)
        failure = await self._send(UpdateAuthorizedKeysCommand(content=content))
        if failure:
            return failure

        logger.info(f"Updating key file with {len(keys)} keys")
        return ActionResult(
            error=False,
            msg="Key file updated. The update should be effective in less than 2 minutes.",
        )

    async def request_restore(
        self,
        db: AsyncSession,
        user: Optional[User],
        client_id: int,
        job_id: int,
        restore: RestoreRequest,
    ) -> ActionResult:
        """
        Queue a restore of ``restore.path`` from a job's snapshots to a client.

        Raises:
            AuthorizationError: The caller may not access the source or target client
            ValueError: A referenced job, client or backup location does not exist
        """
        job = await db.get(Job, job_id)
        if job is None or job.client_id != client_id:
            raise ValueError(f"Unable to find Job entity: {client_id} {job_id}")
        source_client = await db.get(Client, client_id)
        target_client = await db.get(Client, restore.target_client_id)
        if source_client is None or target_client is None:
            raise ValueError("Unable to find Client entity")
        location = await db.get(BackupLocation, restore.backup_location_id)
        if location is None:
            raise ValueError(
                f"Unable to find BackupLocation entity: {restore.backup_location_id}"
            )

        self.authorization.require_client_access(user, source_client)
        self.authorization.require_client_access(user, target_client)

        try:
            source_path = build_source_path(
                location.directory, client_id, job_id, restore.path
            )
        except ValueError as e:
            logger.warning(f"Rejected restore for client {client_id}: {e}")
            return ActionResult(error=True, msg=str(e))

        command = RestoreBackupCommand(
            url=target_client.url or "",
            source_path=source_path,
            remote_path=restore.remote_path,
            ssh_args=target_client.ssh_args or "",
        )
        failure = await self._send(command)
        if failure:
            return failure

        logger.info(
            f'Client "{client_id}" restore started',
            extra={"link": client_link(client_id, self.url_prefix)},
        )
        return ActionResult(
            error=False,
            msg="Your backup restore process has been enqueued",
            data=[job_id],
        )

    async def request_backups_deletion(
        self,
        db: AsyncSession,
        user: Optional[User],
        client_id: int,
        job_id: Optional[int] = None,
    ) -> ActionResult:
        """
        Queue deletion of a job's backups, or of all of a client's backups.

        Raises:
            AuthorizationError: The caller may not manage this client
            ValueError: The client does not exist
        """
        result = await db.execute(select(Client).where(Client.id == client_id))
        client = result.scalar_one_or_none()
        if client is None:
            raise ValueError(f"Unable to find Client entity: {client_id}")
        self.authorization.require_client_access(user, client)

        queued = select(QueueEntry.id).join(Job).where(Job.client_id == client_id)
        if job_id is not None:
            queued = queued.where(QueueEntry.job_id == job_id)
        if (await db.execute(queued.limit(1))).first() is not None:
            if job_id is None:
                msg = "Could not delete client backups, it has jobs enqueued."
            else:
                msg = "Could not delete job backups, the job is enqueued."
            logger.error(
                f"Refused backup deletion for client {client_id}: {msg}",
                extra={"link": client_link(client_id, self.url_prefix)},
            )
            return ActionResult(error=True, msg=msg)

        failure = await self._send(
            DeleteJobBackupsCommand(client=client_id, job=job_id)
        )
        if failure:
            return failure

        if job_id is None:
            link = client_link(client_id, self.url_prefix)
            msg = f"Client {client_id} backups scheduled for deletion"
        else:
            link = job_link(client_id, job_id, self.url_prefix)
            msg = f"Client {client_id}, job {job_id} backups scheduled for deletion"

        logger.info(msg, extra={"link": link})
        return ActionResult(
            error=False, msg=msg, data=[job_id] if job_id is not None else []
        )

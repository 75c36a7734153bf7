"""
Request-facing enqueue and abort operations.

Translates user actions into Job Queue mutations, with authorization and
"already queued" / "already ended" handling. Storage failures come back as
error results with a human readable message instead of exceptions.
"""

import logging
import secrets
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from elkarbackup.exceptions import AuthorizationError, StorageError
from elkarbackup.models.database import Job, QueueEntry, User
from elkarbackup.models.results import ActionResult, QueueOutcome
from elkarbackup.protocols.job_queue_protocol import JobQueueProtocol
from elkarbackup.services.authorization_service import AuthorizationService
from elkarbackup.utils.links import job_link

logger = logging.getLogger(__name__)

ABORT_ACTION = "callbackJobAborting"
STATUS_REPORT_SOURCE = "StatusReport"

MSG_LOGIN_OR_TOKEN = "You need to login or send a token"
MSG_BAD_TOKEN = "You need to login or send properly values"
MSG_QUEUED = "Job queued successfully. It will start running in less than a minute!"
MSG_ALREADY_QUEUED = (
    "One or more jobs were already enqueued, they will not be enqueued again"
)
MSG_ABORTING = "Job stop requested: aborting job"
MSG_ALREADY_ENDED = "The requested job does not exists, it has probably ended."
MSG_TOKEN_GENERATED = "New token have been generated"

TOKEN_BYTES = 32


class JobQueueService:
    def __init__(
        self,
        job_queue: JobQueueProtocol,
        authorization: AuthorizationService,
        url_prefix: str = "",
    ) -> None:
        self.job_queue = job_queue
        self.authorization = authorization
        self.url_prefix = url_prefix

    async def get_job(self, db: AsyncSession, client_id: int, job_id: int) -> Job:
        """
        Load a job together with its client.

        Raises:
            ValueError: If the job does not exist or belongs to another client
        """
        result = await db.execute(
            select(Job)
            .options(selectinload(Job.client))
            .where(Job.id == job_id)
            .execution_options(populate_existing=True)
        )
        job = result.scalar_one_or_none()
        if job is None or job.client_id != client_id:
            raise ValueError(f"Unable to find Job entity: {client_id} {job_id}")
        return job

    async def _get_job_for_token(
        self, db: AsyncSession, client_id: int, job_id: int, token: Optional[str]
    ) -> Job:
        """
        Load a job for an anonymous caller.

        Unknown jobs, jobs of another client and wrong tokens all fail the
        same way, so the response does not reveal which job ids exist.
        """
        if not token:
            raise AuthorizationError(MSG_LOGIN_OR_TOKEN)

        result = await db.execute(
            select(Job)
            .where(Job.id == job_id)
            .execution_options(populate_existing=True)
        )
        job = result.scalar_one_or_none()
        if (
            job is None
            or job.client_id != client_id
            or not self.authorization.token_matches(job, token)
        ):
            logger.warning(f"Rejected anonymous run of job {job_id}: token mismatch")
            raise AuthorizationError(MSG_BAD_TOKEN)
        return job

    async def enqueue_job(
        self,
        db: AsyncSession,
        client_id: int,
        job_id: int,
        user: Optional[User],
        token: Optional[str] = None,
    ) -> ActionResult:
        """
        Queue a job for immediate execution.

        Authenticated callers need access to the job's client. Anonymous
        callers must send the job's token.

        Raises:
            AuthorizationError: The caller may not run this job; nothing is queued
            ValueError: The job does not exist (authenticated callers only)
        """
        if user is None:
            job = await self._get_job_for_token(db, client_id, job_id, token)
        else:
            job = await self.get_job(db, client_id, job_id)
            self.authorization.require_client_access(user, job.client)

        extra = {
            "link": job_link(client_id, job_id, self.url_prefix),
            "source": STATUS_REPORT_SOURCE,
        }
        try:
            outcome, _ = await self.job_queue.enqueue(job.id)
        except StorageError as e:
            logger.error(f"Unable to enqueue job {job_id}: {e}", extra=extra)
            return ActionResult(
                error=True, msg=f"Unable to enqueue job: {e}", data=[job_id]
            )

        if outcome == QueueOutcome.QUEUED:
            logger.info("QUEUED", extra=extra)
            return ActionResult(
                error=False, msg=MSG_QUEUED, data=[job_id], outcome=outcome
            )

        logger.warning(
            "The job has been already enqueued, it will not be enqueued again",
            extra=extra,
        )
        return ActionResult(
            error=True, msg=MSG_ALREADY_QUEUED, data=[job_id], outcome=outcome
        )

    async def abort_job(
        self,
        db: AsyncSession,
        client_id: int,
        job_id: int,
        user: Optional[User],
    ) -> ActionResult:
        """
        Ask a queued or running job to stop.

        Raises:
            AuthorizationError: The caller may not manage this job
            ValueError: The job does not exist
        """
        job = await self.get_job(db, client_id, job_id)
        self.authorization.require_client_access(user, job.client)

        extra = {
            "link": job_link(client_id, job_id, self.url_prefix),
            "source": STATUS_REPORT_SOURCE,
        }
        try:
            outcome = await self.job_queue.abort(job.id)
        except StorageError as e:
            logger.error(f"Unable to abort job {job_id}: {e}", extra=extra)
            return ActionResult(
                error=True,
                msg=f"Unable to abort job: {e}",
                data=[job_id],
                action=ABORT_ACTION,
            )

        if outcome == QueueOutcome.ALREADY_ENDED:
            return ActionResult(
                error=True,
                msg=MSG_ALREADY_ENDED,
                data=[job_id],
                action=ABORT_ACTION,
                outcome=outcome,
            )

        logger.info(MSG_ABORTING, extra=extra)
        return ActionResult(
            error=False,
            msg=MSG_ABORTING,
            data=[job_id],
            action=ABORT_ACTION,
            outcome=outcome,
        )

    async def generate_token(
        self,
        db: AsyncSession,
        client_id: int,
        job_id: int,
        user: Optional[User],
    ) -> str:
        """
        Replace the token that lets anonymous callers run this job.

        Raises:
            AuthorizationError: The caller may not manage this job
            ValueError: The job does not exist
            StorageError: The new token could not be saved
        """
        job = await self.get_job(db, client_id, job_id)
        self.authorization.require_client_access(user, job.client)

        job.token = secrets.token_urlsafe(TOKEN_BYTES)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Unable to save job token: {e}") from e

        logger.info(
            MSG_TOKEN_GENERATED,
            extra={"link": job_link(client_id, job_id, self.url_prefix)},
        )
        return job.token

    async def get_status(self) -> List[QueueEntry]:
        """Queue entries in execution order"""
        return await self.job_queue.list_ordered()

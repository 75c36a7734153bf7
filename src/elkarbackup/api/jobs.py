import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from elkarbackup.api.auth import CurrentUserDep
from elkarbackup.api.errors import action_response, error_response
from elkarbackup.dependencies import JobQueueServiceDep
from elkarbackup.exceptions import AuthorizationError, StorageError
from elkarbackup.models.database import get_db
from elkarbackup.models.schemas import QueueEntryResponse
from elkarbackup.services.jobs.job_queue_service import MSG_TOKEN_GENERATED

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/clients/{client_id}/jobs/{job_id}/run")
async def enqueue_job(
    client_id: int,
    job_id: int,
    current_user: CurrentUserDep,
    job_queue_svc: JobQueueServiceDep,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Queue a job to run now. Anonymous callers must send the job token."""
    try:
        result = await job_queue_svc.enqueue_job(
            db, client_id, job_id, current_user, token
        )
    except (AuthorizationError, ValueError) as e:
        return error_response(e)
    return action_response(result)


@router.post("/clients/{client_id}/jobs/{job_id}/abort")
async def abort_job(
    client_id: int,
    job_id: int,
    current_user: CurrentUserDep,
    job_queue_svc: JobQueueServiceDep,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Request a cooperative stop of a queued or running job"""
    try:
        result = await job_queue_svc.abort_job(db, client_id, job_id, current_user)
    except (AuthorizationError, ValueError) as e:
        return error_response(e)
    return action_response(result)


@router.post("/clients/{client_id}/jobs/{job_id}/token")
async def generate_token(
    client_id: int,
    job_id: int,
    current_user: CurrentUserDep,
    job_queue_svc: JobQueueServiceDep,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Give the job a new token for anonymous runs"""
    try:
        token = await job_queue_svc.generate_token(db, client_id, job_id, current_user)
    except (AuthorizationError, ValueError, StorageError) as e:
        return error_response(e)
    return JSONResponse({"error": False, "msg": MSG_TOKEN_GENERATED, "token": token})


@router.get("/status", response_model=List[QueueEntryResponse])
async def show_status(
    current_user: CurrentUserDep,
    job_queue_svc: JobQueueServiceDep,
):
    """Queue entries in the order the worker will consider them"""
    if current_user is None:
        return error_response(AuthorizationError("You need to login"))
    try:
        entries = await job_queue_svc.get_status()
    except StorageError as e:
        return error_response(e)
    return [QueueEntryResponse.model_validate(entry) for entry in entries]

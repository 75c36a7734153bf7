import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from elkarbackup.api.auth import CurrentUserDep
from elkarbackup.api.errors import action_response, error_response
from elkarbackup.dependencies import MaintenanceServiceDep, ParameterStoreDep
from elkarbackup.exceptions import AuthorizationError
from elkarbackup.models.database import get_db
from elkarbackup.models.schemas import (
    AuthorizedKey,
    AuthorizedKeysUpdate,
    DeleteBackupsRequest,
    RestoreRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/config/publickey/generate")
async def generate_public_key(
    current_user: CurrentUserDep,
    maintenance_svc: MaintenanceServiceDep,
) -> JSONResponse:
    try:
        result = await maintenance_svc.request_keypair_generation(current_user)
    except AuthorizationError as e:
        return error_response(e)
    return action_response(result)


@router.get("/config/publickey/get")
async def download_public_key(
    current_user: CurrentUserDep,
    maintenance_svc: MaintenanceServiceDep,
    parameter_store: ParameterStoreDep,
) -> Response:
    try:
        public_key_path = parameter_store.load().public_key
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read parameters: {e}")
        return JSONResponse(
            {"error": True, "msg": f"Unable to read parameters: {e}"}, status_code=500
        )

    try:
        content = maintenance_svc.read_public_key(current_user, public_key_path)
    except (AuthorizationError, ValueError) as e:
        return error_response(e)
    except OSError as e:
        logger.error(f"Failed to read public key {public_key_path}: {e}")
        return JSONResponse(
            {"error": True, "msg": f"Unable to read public key: {e}"}, status_code=500
        )

    return Response(
        content=content,
        media_type="text/plain",
        headers={"Content-Disposition": 'attachment; filename="id_rsa.pub"'},
    )


@router.post("/config/authorized-keys")
async def update_authorized_keys(
    keys_update: AuthorizedKeysUpdate,
    current_user: CurrentUserDep,
    maintenance_svc: MaintenanceServiceDep,
) -> JSONResponse:
    keys: List[AuthorizedKey] = keys_update.public_keys
    try:
        result = await maintenance_svc.request_authorized_keys_update(
            current_user, keys
        )
    except AuthorizationError as e:
        return error_response(e)
    return action_response(result)


@router.post("/clients/{client_id}/jobs/{job_id}/restore")
async def restore_backup(
    client_id: int,
    job_id: int,
    restore_request: RestoreRequest,
    current_user: CurrentUserDep,
    maintenance_svc: MaintenanceServiceDep,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    try:
        result = await maintenance_svc.request_restore(
            db, current_user, client_id, job_id, restore_request
        )
    except (AuthorizationError, ValueError) as e:
        return error_response(e)
    return action_response(result)


@router.post("/clients/{client_id}/backups/delete")
async def delete_backups(
    client_id: int,
    delete_request: DeleteBackupsRequest,
    current_user: CurrentUserDep,
    maintenance_svc: MaintenanceServiceDep,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Queue deletion of a job's backups, or of every backup of the client"""
    try:
        result = await maintenance_svc.request_backups_deletion(
            db, current_user, client_id, delete_request.job_id
        )
    except (AuthorizationError, ValueError) as e:
        return error_response(e)
    return action_response(result)

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from elkarbackup.api.auth import CurrentUserDep
from elkarbackup.api.errors import error_response
from elkarbackup.dependencies import AuthorizationServiceDep, ParameterStoreDep
from elkarbackup.exceptions import AuthorizationError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def get_parameters(
    current_user: CurrentUserDep,
    authorization: AuthorizationServiceDep,
    parameter_store: ParameterStoreDep,
) -> JSONResponse:
    try:
        authorization.require_admin(current_user)
    except AuthorizationError as e:
        return error_response(e)

    try:
        parameters = parameter_store.load()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read parameters: {e}")
        return JSONResponse(
            {"error": True, "msg": f"Unable to read parameters: {e}"}, status_code=500
        )
    return JSONResponse(parameters.model_dump())


@router.put("")
async def update_parameters(
    current_user: CurrentUserDep,
    authorization: AuthorizationServiceDep,
    parameter_store: ParameterStoreDep,
    changes: Dict[str, Any] = Body(...),
) -> JSONResponse:
    """Partial update of the parameters; the file is replaced atomically"""
    try:
        authorization.require_admin(current_user)
    except AuthorizationError as e:
        return error_response(e)

    try:
        parameters = parameter_store.update(changes)
    except ValueError as e:
        return JSONResponse({"error": True, "msg": str(e)}, status_code=400)
    except OSError as e:
        logger.error(f"Failed to save parameters: {e}")
        return JSONResponse(
            {"error": True, "msg": f"Unable to save parameters: {e}"}, status_code=500
        )

    logger.info(f"Parameters updated: {', '.join(sorted(changes))}")
    return JSONResponse(
        {"error": False, "msg": "Parameters updated", "parameters": parameters.model_dump()}
    )

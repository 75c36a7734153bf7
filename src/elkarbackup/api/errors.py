"""
Conversion of service exceptions into JSON responses.
"""

import logging

from fastapi.responses import JSONResponse

from elkarbackup.exceptions import AuthorizationError
from elkarbackup.models.results import ActionResult

logger = logging.getLogger(__name__)


def action_response(result: ActionResult) -> JSONResponse:
    return JSONResponse(result.to_dict())


def error_response(error: Exception) -> JSONResponse:
    """JSON body with the same shape as ActionResult, for failed requests"""
    if isinstance(error, AuthorizationError):
        return JSONResponse({"error": True, "msg": str(error)}, status_code=403)
    if isinstance(error, ValueError):
        return JSONResponse({"error": True, "msg": str(error)}, status_code=404)

    logger.error(f"Unexpected error handling request: {error}")
    return JSONResponse({"error": True, "msg": str(error)}, status_code=500)

"""
Handlers for expected errors.

``ApiError`` carries its own status, code and details. FastAPI's
``HTTPException`` and request validation errors are mapped onto the same
envelope; a 404 raised by the router for an unknown path gets the
``Route METHOD path not found`` message.
"""

from typing import Any, Dict, List

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tourbnt.core.errors import VALIDATION_ERROR, ApiError, code_for_status
from tourbnt.core.logging_config import get_logger
from tourbnt.core.responses import error_body

logger = get_logger(__name__)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    request.state.error_message = exc.message
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code, exc.errors))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code_for_status(exc.status_code)),
        headers=getattr(exc, "headers", None),
    )


def _simplify(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    simplified = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        simplified.append({"field": ".".join(location), "message": error.get("msg", ""), "type": error.get("type")})
    return simplified


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _simplify(list(exc.errors()))
    logger.debug(f"Validation failed for {request.method} {request.url.path}: {errors}")
    message = errors[0]["message"] if len(errors) == 1 else "Validation failed"
    return JSONResponse(status_code=400, content=error_body(message, VALIDATION_ERROR, errors))

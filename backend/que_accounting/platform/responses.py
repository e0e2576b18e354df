"""
Uniform JSON envelope and exception handlers.

Success: {"success": true, "message": ..., "data": ...}
Error:   {"success": false, "message": ..., "data": null}

Unanticipated exceptions (including datastore timeouts) are logged with
their traceback and surfaced as a generic 500 without internal text.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from que_accounting.platform.errors import AppError

logger = logging.getLogger(__name__)


def camelize(value: Any) -> Any:
    """Recursively convert snake_case mapping keys to camelCase."""
    if isinstance(value, dict):
        return {
            (to_camel(key) if isinstance(key, str) and "_" in key else key): camelize(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [camelize(item) for item in value]
    return value


def success_response(data: Any = None, message: str = "Success") -> dict:
    """
    Build a success envelope with camelCase keys.

    Routes return the envelope as a plain dict (status set on the route
    decorator) so headers added by dependencies are kept on the response.
    """
    return {"success": True, "message": message, "data": camelize(jsonable_encoder(data))}


def error_response(
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    error_code: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Build an error envelope response."""
    merged = dict(headers or {})
    if error_code:
        merged["X-Error-Code"] = error_code
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": None},
        headers=merged or None,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error_code": exc.error_code},
            exc_info=exc,
        )
    else:
        logger.warning(
            "Request rejected",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_code": exc.error_code,
                "status": exc.http_status,
            },
        )
    return error_response(exc.message, exc.http_status, exc.error_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(message, exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return error_response(message, status.HTTP_400_BAD_REQUEST, "validation_failed")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on an application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

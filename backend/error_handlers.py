"""Global exception handlers for FastAPI.

Every error body carries a ``message`` field that the dashboard shows
directly. In debug mode extra detail (provider codes, stack traces) is
included; in production only the message is returned.
"""

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings
from exceptions import AppError

logger = logging.getLogger(__name__)


def create_error_response(message: str, **extra: Any) -> dict[str, Any]:
    """Build the ``{"message": ...}`` body, dropping empty extras."""
    body: dict[str, Any] = {"message": message}
    for key, value in extra.items():
        if value:
            body[key] = value
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle AppError and subclasses."""
    if exc.status_code >= 500:
        logger.error(
            "Upstream error: %s (path=%s, details=%s)",
            exc.message, request.url.path, exc.details,
        )
    else:
        logger.warning(
            "API error: %s (status=%d, path=%s)",
            exc.message, exc.status_code, request.url.path,
        )

    details = exc.details if get_settings().debug else None
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, details=details),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert pydantic request errors to a 400 with the first problem as message."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", []) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) or None,
            "message": error.get("msg", "Invalid value"),
        })

    first = errors[0] if errors else {"field": None, "message": "Invalid request"}
    message = (
        f"Invalid {first['field']}: {first['message']}" if first["field"] else first["message"]
    )
    return JSONResponse(
        status_code=400,
        content=create_error_response(message, errors=errors),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTPExceptions (404 route, 405 method) in the same shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, hide it unless in debug mode."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)

    extra: dict[str, Any] = {}
    if get_settings().debug:
        extra["error"] = f"{type(exc).__name__}: {exc}"
        extra["stack"] = traceback.format_exc()
    return JSONResponse(
        status_code=500,
        content=create_error_response("Server error", **extra),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach all handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

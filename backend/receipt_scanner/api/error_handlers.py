"""
Custom exception handlers for FastAPI.
Every failure is rendered as ``{"success": false, "error": "<message>"}``.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from receipt_scanner.core.database import StorageFailure
from receipt_scanner.core.observability import sentry_capture

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "success": False},
        headers=headers,
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == HTTP_405_METHOD_NOT_ALLOWED:
        logger.warning("Method not allowed: %s %s", request.method, request.url.path)
        message = "Method not allowed"
    else:
        message = str(exc.detail)
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        message = "Invalid JSON in request body"
    else:
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid request body: {location + ': ' if location else ''}{first.get('msg', 'invalid value')}"
    return error_response(HTTP_400_BAD_REQUEST, message)


def storage_failure_handler(request: Request, exc: StorageFailure):
    logger.error("Database operation failed on %s: %s", request.url.path, exc)
    return error_response(HTTP_500_INTERNAL_SERVER_ERROR, f"Database operation failed: {exc}")


def generic_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    sentry_capture(exc)
    return error_response(HTTP_500_INTERNAL_SERVER_ERROR, f"Internal server error: {exc}")

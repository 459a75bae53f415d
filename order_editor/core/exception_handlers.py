"""
Centralized exception handlers for the FastAPI application.

Every handler returns the same error envelope so that clients of the
order editor API can rely on one shape for all failures.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from order_editor.core.config import get_settings
from order_editor.utils.error_handler import (
    AppException,
    BackendAPIException,
    FbrSubmissionException,
    ValidationException,
)

settings = get_settings()
logger = logging.getLogger(__name__)


def _envelope(request: Request, error_type: str, message: str, **fields: Any) -> Dict[str, Any]:
    return {
        "error": True,
        "error_type": error_type,
        "message": message,
        **fields,
        "path": str(request.url.path),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("X-Request-ID"),
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handler for application exceptions without a dedicated handler.

    Args:
        request: FastAPI request
        exc: Application exception

    Returns:
        JSONResponse: Formatted error response
    """
    logger.error(
        f"App Exception: {exc.message} - "
        f"Code: {exc.error_code.value} - "
        f"URL: {request.url} - "
        f"Details: {exc.details}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(
            request,
            "application_error",
            exc.message,
            error_code=exc.error_code.value,
            details=exc.details if settings.DEBUG else None,
        ),
    )


async def validation_exception_handler(request: Request, exc: ValidationException) -> JSONResponse:
    """Handler for rejected order edits (nothing was changed)."""
    logger.warning(
        f"Validation Exception: {exc.message} - "
        f"Field: {exc.field} - "
        f"Value: {exc.invalid_value} - "
        f"URL: {request.url}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(
            request,
            "validation_error",
            exc.message,
            error_code=exc.error_code.value,
            field=exc.field,
            invalid_value=str(exc.invalid_value) if settings.DEBUG and exc.invalid_value is not None else None,
            expected_format=exc.expected_format,
        ),
    )


async def backend_api_exception_handler(request: Request, exc: BackendAPIException) -> JSONResponse:
    """
    Handler for failed backend calls.

    A rate limited backend is reported with ``Retry-After`` so the caller
    can back off.
    """
    logger.error(
        f"Backend API Exception: {exc.message} - "
        f"API Code: {exc.api_response_code} - "
        f"Endpoint: {exc.endpoint} - "
        f"URL: {request.url}"
    )

    headers = {}
    if exc.rate_limited and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(
            request,
            "backend_api_error",
            exc.message,
            error_code=exc.error_code.value,
            backend_response_code=exc.api_response_code,
            endpoint=exc.endpoint,
            rate_limited=exc.rate_limited,
        ),
        headers=headers,
    )


async def fbr_submission_exception_handler(request: Request, exc: FbrSubmissionException) -> JSONResponse:
    """Handler for FBR rejections; the per-item messages are returned verbatim."""
    logger.error(f"❌ FBR {exc.step} failure: {exc.message} - {len(exc.item_errors)} item error(s) - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(
            request,
            "fbr_submission_error",
            exc.message,
            error_code=exc.error_code.value,
            step=exc.step,
            item_errors=exc.item_errors,
        ),
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for request bodies that do not match the schema."""
    logger.warning(f"Request Validation Error: {exc.errors()} - URL: {request.url}")

    return JSONResponse(
        status_code=422,
        content=_envelope(
            request,
            "request_validation_error",
            "Invalid request body",
            error_code="VALIDATION_ERROR",
            errors=[{"loc": list(error.get("loc", ())), "msg": error.get("msg")} for error in exc.errors()],
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(request, "http_error", str(exc.detail), status_code=exc.status_code),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handler for uncaught exceptions.

    Internal details are only exposed in debug mode.
    """
    logger.error(
        f"Unhandled Exception: {str(exc)} - "
        f"Type: {type(exc).__name__} - "
        f"URL: {request.url} - "
        f"Traceback: {traceback.format_exc()}"
    )

    error_message = "Internal server error occurred"
    if settings.DEBUG:
        error_message = f"{type(exc).__name__}: {str(exc)}"

    return JSONResponse(
        status_code=500,
        content=_envelope(
            request,
            "internal_server_error",
            error_message,
            traceback=traceback.format_exc() if settings.DEBUG else None,
        ),
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Register every exception handler on the application.

    Args:
        app: FastAPI instance
    """
    logger.info("🔧 Configuring exception handlers...")

    app.add_exception_handler(ValidationException, validation_exception_handler)
    app.add_exception_handler(FbrSubmissionException, fbr_submission_exception_handler)
    app.add_exception_handler(BackendAPIException, backend_api_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("✅ Exception handlers configured")

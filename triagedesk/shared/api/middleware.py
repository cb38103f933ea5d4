"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.

Every error leaves the service as ``{"error": "..."}`` so clients only need
one shape to render.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from triagedesk.core import (
    ApplicationException,
    DomainException,
    ResourceNotFoundException,
    ValidationException,
)
from triagedesk.shared.infrastructure.logging import get_logger, set_correlation_id

logger = get_logger(__name__)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an ``X-Correlation-ID``.

    A client-supplied id is reused; otherwise a new uuid4 is issued. The id is
    echoed on the response and bound to the logging context for the request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
        finally:
            set_correlation_id(None)

        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log: one line when a request starts and one when it ends."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_info = {"method": request.method, "path": request.url.path}

        logger.info(
            "Request started",
            extra={**request_info, "client": request.client.host if request.client else None}
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    **request_info,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                **request_info,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."

    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(location) or "body"

    if first.get("type") == "missing":
        return f"{field} is required."
    return f"Invalid {field}: {first.get('msg', 'invalid value')}."


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Missing or malformed body fields become a 400 before any side effect."""
    message = _describe_validation_error(exc)
    logger.info(
        "Request rejected",
        extra={"correlation_id": _correlation_id(request), "reason": message}
    )
    return JSONResponse(status_code=400, content={"error": message})


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def application_exception_handler(
    request: Request, exc: ApplicationException
) -> JSONResponse:
    """
    Maps application exceptions that reach the boundary to status codes.

    Validation -> 400, not found -> 404, domain rule -> 409. Anything else is
    a downstream failure and is reported as a generic 500.
    """
    correlation_id = _correlation_id(request)

    if isinstance(exc, ValidationException):
        return JSONResponse(status_code=400, content={"error": exc.message})
    if isinstance(exc, ResourceNotFoundException):
        return JSONResponse(status_code=404, content={"error": exc.message})
    if isinstance(exc, DomainException):
        return JSONResponse(status_code=409, content={"error": exc.message})

    logger.error(
        "Application error",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
        }
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "correlation_id": correlation_id}
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    correlation_id = _correlation_id(request)

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    # Don't expose internal details in production
    settings = getattr(request.app.state, "settings", None)
    is_dev = getattr(settings, "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )

"""
Shared API Middleware
======================

Correlation ids, request metrics, request logging and the exception handlers that turn the
``ApplicationException`` family into JSON error responses.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from supportdesk.core import (
    ApplicationException,
    AuthenticationException,
    AuthorizationException,
    DependencyException,
    InvalidTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from supportdesk.shared.infrastructure.logging import get_context_logger, get_logger

logger = get_logger(__name__)

# First match wins, so subclasses come before their parents.
STATUS_BY_EXCEPTION = (
    (ValidationException, status.HTTP_400_BAD_REQUEST),
    (AuthenticationException, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationException, status.HTTP_403_FORBIDDEN),
    (ResourceNotFoundException, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionException, status.HTTP_409_CONFLICT),
    (DependencyException, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_code_for(exc: ApplicationException) -> int:
    for exc_type, code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    Reuses the caller's ``X-Correlation-ID`` header when present.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Tracks request count and response time.

    The timing is returned in ``X-Response-Time`` for load balancers and
    the running totals are kept for the health endpoint.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.request_count = 0
        self.total_response_time = 0.0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        self.request_count += 1
        request.app.state.request_metrics = self

        response = await call_next(request)

        elapsed = time.perf_counter() - start_time
        self.total_response_time += elapsed
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"
        return response

    def snapshot(self) -> dict:
        average_ms = (self.total_response_time / self.request_count) * 1000 if self.request_count else 0.0
        return {"requests": self.request_count, "avg_response_time_ms": round(average_ms, 2)}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs the start and end of every request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        log = get_context_logger(__name__, _correlation_id(request))
        start_time = time.perf_counter()

        log.info(
            "Request started",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            log.error(
                "Request failed",
                extra={
                    "method": request.method,
                    "url": str(request.url),
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        log.info(
            "Request completed",
            extra={
                "method": request.method,
                "url": str(request.url),
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Map domain and application errors to their HTTP status."""
    code = status_code_for(exc)
    log = logger.warning if code < 500 else logger.error
    log(
        "Request rejected",
        extra={
            "correlation_id": _correlation_id(request),
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "status_code": code
        }
    )

    return JSONResponse(
        status_code=code,
        content={
            "error": exc.message,
            "details": exc.details,
            "correlation_id": _correlation_id(request)
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters are client errors (400)."""
    logger.warning(
        "Request validation failed",
        extra={"correlation_id": _correlation_id(request), "path": request.url.path}
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request",
            "details": {"errors": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
                for error in exc.errors()
            ]},
            "correlation_id": _correlation_id(request)
        }
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
    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )

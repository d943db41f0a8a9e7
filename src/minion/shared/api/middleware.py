"""
Shared API Middleware
======================

Correlation IDs, request logging and exception handlers for the FastAPI app.
"""

import time
import uuid
from typing import Callable
from datetime import datetime, timezone

from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from minion.core import (
    InvalidInputException,
    CollaboratorUnavailableException,
    ConfigurationException,
)
from minion.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a correlation ID to every request.

    An incoming X-Correlation-ID header is reused, otherwise a UUID4 is
    generated. The value is exposed on request.state and echoed back.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs request start, completion and failure with elapsed time."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = _correlation_id(request)
        start_time = time.perf_counter()
        context = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
        }

        logger.info("Request started", extra=context)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    **context,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                **context,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


async def invalid_input_handler(request: Request, exc: InvalidInputException) -> Response:
    """Unparsable support requests are client errors; the message is the body."""
    logger.info(
        "Rejected invalid input",
        extra={"correlation_id": _correlation_id(request), "reason": exc.message}
    )
    return PlainTextResponse(exc.message, status_code=400)


async def collaborator_unavailable_handler(
    request: Request,
    exc: CollaboratorUnavailableException
) -> JSONResponse:
    """Upstream Jira/catalog/forum failures map to 503, distinct from guidance."""
    correlation_id = _correlation_id(request)
    logger.error(
        "Collaborator unavailable",
        extra={
            "correlation_id": correlation_id,
            "service": exc.service_name,
            "error_message": exc.message
        }
    )
    return JSONResponse(
        status_code=503,
        content={
            "detail": exc.message,
            "service": exc.service_name,
            "correlation_id": correlation_id
        }
    )


async def configuration_error_handler(
    request: Request,
    exc: ConfigurationException
) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": exc.message, "correlation_id": _correlation_id(request)}
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

    # Don't expose internal details outside development
    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )


def register_exception_handlers(app) -> None:
    """Attach every handler above to the FastAPI app."""
    app.add_exception_handler(InvalidInputException, invalid_input_handler)
    app.add_exception_handler(CollaboratorUnavailableException, collaborator_unavailable_handler)
    app.add_exception_handler(ConfigurationException, configuration_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

"""
Application Middleware for the Raffle Profile API.

Cross-cutting request handling shared by every router.

Key Components:
- `CorrelationMiddleware`: Assigns a correlation ID to every request (or
  reuses the caller's `X-Correlation-ID` / `X-Request-ID`), exposes it on
  `request.state` and echoes it in the response headers. Log records emitted
  while the request is handled carry the same ID.
- `PerformanceMiddleware`: Logs request start and completion, adds an
  `X-Process-Time` header and warns about slow requests.
- `register_error_handlers`: Installs exception handlers that turn
  `RaffleAPIException` and unexpected errors into one JSON error shape.

Middleware order matters: `CorrelationMiddleware` must be added last so it
runs first and the ID is available to everything after it.
"""

import time
import uuid
from typing import Callable
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging_config import set_correlation_id, get_logger
from .exceptions import RaffleAPIException, to_http_exception

logger = get_logger("core.middleware")

SLOW_REQUEST_SECONDS = 2.0


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-ID")
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )

        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and logging"""

    def __init__(self, app: ASGIApp, slow_request_seconds: float = SLOW_REQUEST_SECONDS):
        super().__init__(app)
        self.slow_request_seconds = slow_request_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.debug(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None,
            },
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        log = logger.warning if process_time > self.slow_request_seconds else logger.info
        log(
            f"Request completed: {request.method} {request.url.path} "
            f"{response.status_code} in {process_time * 1000:.1f} ms",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(process_time * 1000, 2),
            },
        )
        return response


def _error_body(request: Request, error_type: str, code: str, message: str, details=None):
    return {
        "error": {
            "type": error_type,
            "code": code,
            "message": message,
            "details": details or {},
            "correlation_id": getattr(request.state, "correlation_id", None),
        }
    }


async def raffle_exception_handler(request: Request, exc: RaffleAPIException) -> JSONResponse:
    http_exc = to_http_exception(exc)
    log = logger.error if http_exc.status_code >= 500 else logger.warning
    log(
        f"Application error: {exc}",
        extra={
            "error_type": type(exc).__name__,
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=http_exc.status_code,
        content=_error_body(
            request, type(exc).__name__, exc.error_code, exc.message, exc.details
        ),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unexpected error: {exc}",
        extra={
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            request, "InternalServerError", "INTERNAL_ERROR", "An unexpected error occurred"
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RaffleAPIException, raffle_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

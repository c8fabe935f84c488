"""
Application Middleware for the Profile Widget API.

Cross-cutting request handling built on Starlette's `BaseHTTPMiddleware`.

Key Middleware Components:
- `CorrelationMiddleware`: assigns each request a correlation id (taken from
  `X-Correlation-ID` / `X-Request-ID` or freshly generated), exposes it on
  `request.state` and echoes it back in the response headers.
- `ErrorHandlingMiddleware`: converts `WidgetAPIException` into the public
  `{"error": message}` body with the exception's status code, and any other
  exception into a generic 500. Errors never escape to the server.
- `PerformanceMiddleware`: logs request start and completion, adds
  `X-Process-Time` (milliseconds) and warns about slow requests.

Registration order matters: Starlette runs the last-added middleware first, so
`CorrelationMiddleware` is added last to make the id available to the others.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import WidgetAPIException, to_error_response
from .logging_config import get_logger, set_correlation_id

logger = get_logger("core.middleware")

SLOW_REQUEST_SECONDS = 1.0
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests"""

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


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for centralized error handling"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except WidgetAPIException as e:
            log = logger.warning if e.status_code < 500 else logger.error
            log(
                f"Application error: {e.message}",
                extra={
                    "error_type": type(e).__name__,
                    "error_code": e.error_code,
                    "status_code": e.status_code,
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            return to_error_response(e)

        except Exception as e:
            logger.error(
                f"Unexpected error: {e}",
                extra={
                    "error_type": type(e).__name__,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True,
            )
            return JSONResponse(
                status_code=500, content={"error": UNEXPECTED_ERROR_MESSAGE}
            )


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": dict(request.query_params),
                "client_ip": get_client_ip(request),
            },
        )

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        process_time_ms = round(process_time * 1000, 2)
        response.headers["X-Process-Time"] = str(process_time_ms)

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": process_time_ms,
                "cache": response.headers.get("X-Cache"),
            },
        )

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"process_time_ms": process_time_ms},
            )

        return response


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, considering proxy headers"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"

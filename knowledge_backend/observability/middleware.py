"""
HTTP middleware for the knowledge API.

CorrelationMiddleware binds an X-Correlation-ID to the request context so
every log line written while serving it (including ingestion work scheduled
in-process) carries the same ID. RequestLoggingMiddleware writes one access
line per request with its latency.

Dependencies: fastapi, starlette, knowledge_backend.observability.correlation
System role: Request tracing and access logging
"""

import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from knowledge_backend.observability.correlation import (
    clear_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Probes poll constantly; their access lines drown out real traffic
QUIET_PATH_SUFFIXES = ("/health", "/health/db")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One structured access line per request, errors included."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"
        fields = {"method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                f"{route} - unhandled {type(e).__name__}",
                extra={**fields, "process_time_ms": _elapsed_ms(started), "error_type": type(e).__name__},
            )
            raise

        fields.update(status_code=response.status_code, process_time_ms=_elapsed_ms(started))
        if response.status_code >= 500:
            logger.warning(f"{route} - {response.status_code}", extra=fields)
        elif not request.url.path.endswith(QUIET_PATH_SUFFIXES):
            logger.info(f"{route} - {response.status_code}", extra=fields)
        return response


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Adopt the caller's correlation ID (or mint one) and echo it back."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

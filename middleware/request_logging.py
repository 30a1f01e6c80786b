"""
Request logging middleware.

Provides:
- A request ID per request, bound into structlog contextvars so every log
  line emitted while handling the request carries it
- Request/response logging with timing
- X-Request-ID response header for correlation
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from shared.logging import get_logger

log = get_logger("greencity.request")

_QUIET_PATHS = frozenset({"/health"})


def generate_request_id() -> str:
    """Generate a unique request ID for correlation."""
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)

        status_code = response.status_code
        if status_code >= 500:
            log_fn = log.error
        elif status_code >= 400:
            log_fn = log.warning
        elif request.url.path in _QUIET_PATHS:
            log_fn = log.debug
        else:
            log_fn = log.info
        log_fn(
            "request_completed",
            status_code=status_code,
            duration_ms=duration_ms,
            user_agent=request.headers.get("User-Agent", "")[:100],
        )

        response.headers["X-Request-ID"] = request_id
        structlog.contextvars.clear_contextvars()
        return response

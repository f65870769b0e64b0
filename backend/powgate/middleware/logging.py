"""
Request logging middleware with correlation ID support.

Each request gets an 8-character correlation ID bound to the structlog
context and returned in the X-Correlation-ID header. Health probes are
logged at debug level.

Never logs IPs, cookies, credentials, nonces or query strings.
"""

import secrets
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"
QUIET_PATHS = frozenset({"/health"})


def generate_correlation_id() -> str:
    """Generate an 8-character correlation ID."""
    return secrets.token_hex(4)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = generate_correlation_id()
        start = time.perf_counter()
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id, method=request.method, path=path
        )
        logger = structlog.get_logger()
        log = logger.debug if path in QUIET_PATHS else logger.info

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", error=str(e), duration_ms=_elapsed_ms(start), exc_info=True)
            raise

        log("request_completed", status_code=response.status_code, duration_ms=_elapsed_ms(start))
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

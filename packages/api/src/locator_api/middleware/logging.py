"""Request logging middleware with a per-request correlation id."""

from __future__ import annotations

import time
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request_id / method / path into structlog contextvars so every
    service log line of the request carries them, logs one
    ``request_completed`` line, and echoes the id back in X-Request-ID.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("request_failed", error=str(exc), duration_ms=_elapsed_ms(started))
            raise

        log = logger.warning if response.status_code >= 500 else logger.info
        log("request_completed", status=response.status_code, duration_ms=_elapsed_ms(started))
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)

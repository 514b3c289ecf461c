"""
Request logging middleware: one log line per request and an API-call counter update.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration, and records the call in the container's metrics."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        status_code = 500
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            container = getattr(request.app.state, "container", None)
            if container is not None:
                container.metrics.record_api_call(path, status_code)
            logger.info(
                f"{method} {path} - {status_code}",
                extra={
                    "method": method,
                    "path": path,
                    "query_string": str(request.url.query) if request.url.query else None,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )


__all__ = ["RequestLoggingMiddleware"]

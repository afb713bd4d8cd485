"""HTTP middleware for request/response logging."""

import logging
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Chat turns routinely run for many seconds; only flag the rest
SLOW_REQUEST_THRESHOLD_MS = 1000
LONG_RUNNING_SUFFIXES = ("/message", "/summarize", "/init")

# Long-lived streams are logged when opened, never timed
STREAMING_PATHS = {"/event"}

SESSION_PATH = re.compile(r"^/session/(ses_[0-9A-Za-z]+)")


def session_of(path: str) -> str | None:
    match = SESSION_PATH.match(path)
    return match.group(1) if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its status, duration and session.

    Log levels:
    - DEBUG: request start, health checks
    - INFO: successful responses
    - WARNING: 4xx errors, slow requests
    - ERROR: 5xx errors
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path in STREAMING_PATHS:
            logger.info("%s %s opened", request.method, path)
            return await call_next(request)

        start_time = time.perf_counter()
        logger.debug("%s %s", request.method, path)
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        self._log_response(request, response, duration_ms)
        return response

    def _log_response(
        self, request: Request, response: Response, duration_ms: float
    ) -> None:
        method = request.method
        path = request.url.path
        status = response.status_code
        session = session_of(path) or "-"

        if status >= 500:
            logger.error("%s %s [%s] -> %d (%.1fms)", method, path, session, status, duration_ms)
        elif status >= 400:
            logger.warning("%s %s [%s] -> %d (%.1fms)", method, path, session, status, duration_ms)
        elif duration_ms > SLOW_REQUEST_THRESHOLD_MS and not path.endswith(LONG_RUNNING_SUFFIXES):
            logger.warning("%s %s [%s] -> %d (%.1fms) SLOW", method, path, session, status, duration_ms)
        elif path == "/health":
            logger.debug("%s %s -> %d", method, path, status)
        else:
            logger.info("%s %s [%s] -> %d (%.1fms)", method, path, session, status, duration_ms)

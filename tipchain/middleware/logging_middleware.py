"""
Access log for frame and API requests.

Each request gets a short id (taken from ``X-Request-ID`` when the caller
sends one) bound into the structlog context, so log lines from the frame
flow and the transaction preparer carry it too. Frame requests also log
the screen named in their query string.
"""

import time
import uuid
from typing import Iterable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .rate_limit import get_client_identifier

logger = structlog.stdlib.get_logger("tipchain.http")

REQUEST_ID_HEADER = "x-request-id"
DEFAULT_QUIET_PATHS = ("/healthz",)


def _level_for(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code == 429:
        # already reported by the rate limiter
        return "info"
    if status_code >= 400:
        return "warning"
    return "info"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log with request ids, timing and frame screen."""

    def __init__(
        self,
        app: ASGIApp,
        quiet_paths: Optional[Iterable[str]] = None,
        trusted_proxies: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.quiet_paths = frozenset(DEFAULT_QUIET_PATHS if quiet_paths is None else quiet_paths)
        self.trusted_proxies = frozenset(trusted_proxies or ())

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            fields = {
                "method": request.method,
                "path": request.url.path,
                "status": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                "client": get_client_identifier(request, self.trusted_proxies),
            }
            screen = request.query_params.get("screen") or request.query_params.get("status")
            if screen and request.url.path.startswith("/frame"):
                fields["screen"] = screen

            level = _level_for(status_code)
            if request.url.path in self.quiet_paths and level == "info":
                level = "debug"
            getattr(logger, level)("http_request", **fields)

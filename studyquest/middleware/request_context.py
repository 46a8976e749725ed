"""Request context middleware: request IDs and per-request summary logs.

Each request gets an ID (taken from ``X-Request-ID`` when the client
sends one) held in a ``ContextVar`` so every log line emitted while the
request is handled carries it, including lines from the progression
engine several awaits deep.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Attach the current request_id to every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Install on the root logger once, even across module reloads.
root_logger = logging.getLogger()
if not any(isinstance(f, _RequestContextFilter) for f in root_logger.filters):
    root_logger.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, and log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )

            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)

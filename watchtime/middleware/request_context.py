"""Request IDs and the one-line access log.

Concurrent ingestion calls for the same user interleave their log
lines; the request ID stamped on every record (plus the user ID once
the bearer token is validated) is what pulls one request back out:

  {"request_id": "req-abc", "user_id": "u1", "message": "Chunk logged ..."}
  {"request_id": "req-xyz", "user_id": "u1", "message": "Chunk logged ..."}
  {"request_id": "req-abc", "level": "ERROR", "message": "Storage failure: ..."}

Both values live in the ContextVars of watchtime/core/context.py.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from watchtime.core.context import request_id_var, set_user_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID, then log method, route, status and latency.

    A client-supplied X-Request-ID is reused so a sync batch can be
    traced across retries; otherwise a UUID4 is minted.  The header is
    echoed on every response, error responses included.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_id_var.set(request_id)
        set_user_id(None)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

        path = request.url.path
        logger.log(
            _level_for(response.status_code),
            "%s %s -> %d in %.1fms",
            request.method,
            path,
            response.status_code,
            elapsed_ms,
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

"""
Custom middleware for request tracing and timing.

- **Request ID**: every request/response carries a trace id
  (``X-Request-ID``), also made available to log records for the duration of
  the request.
- **Request timing**: every response carries ``X-Process-Time``; slow
  requests are logged as warnings.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from invtracker.core.logging import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
PROCESS_TIME_HEADER = "X-Process-Time"

SLOW_REQUEST_MS = 500


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Injects a unique request ID into every request/response cycle.

    An ``X-Request-ID`` supplied by the caller (or a gateway) is reused;
    otherwise a new UUID4 is generated.  The id is stored on
    ``request.state.request_id``, bound to :data:`request_id_var` while the
    request is handled, and echoed back in the response header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Logs the wall-clock duration of every HTTP request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[PROCESS_TIME_HEADER] = f"{elapsed_ms:.2f}ms"

        if elapsed_ms > SLOW_REQUEST_MS:
            logger.warning(
                "%s %s completed in %.2fms (SLOW)",
                request.method,
                request.url.path,
                elapsed_ms,
                extra={"method": request.method, "path": request.url.path,
                       "status_code": response.status_code, "elapsed_ms": elapsed_ms},
            )
        else:
            logger.debug(
                "%s %s -> %d in %.2fms",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )

        return response

# backend/pricesync/middleware/correlation.py
"""
Correlation id middleware for request tracing.

Correlation id sources (in order of precedence):
1. X-Correlation-ID header (from client or upstream service)
2. X-Request-ID header
3. Generated UUID

A header value is only accepted if it looks like an id (at most 128
characters of letters, digits and `._:-`); anything else is replaced by a
fresh UUID so clients cannot inject text into log lines.

The id is stored in context for the whole request (a sync cycle started by
the request logs under it) and echoed back in the X-Correlation-ID header.
"""

import logging
import re
import time
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from pricesync.utils.context import clear_correlation_id, new_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_correlation_id(request: Request) -> str:
    for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
        value = request.headers.get(header)
        if value is None:
            continue
        if _VALID_ID.match(value):
            return value
        logger.debug(f"Ignoring malformed {header} header")
    return new_correlation_id()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Sets the request's correlation id and logs how long the request took."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = resolve_correlation_id(request)
        set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.debug(
                f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms:.1f}ms"
            )
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()

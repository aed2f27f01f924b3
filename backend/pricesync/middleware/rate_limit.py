# backend/pricesync/middleware/rate_limit.py
"""
Inbound rate limiting for the HTTP API.

Separate from the outbound per-provider RateLimiter: this one protects the
service (and, indirectly, the provider quotas) from clients that call
/sync or /quotes in a loop.

Key by: Client IP address (X-Forwarded-For only from trusted proxies)
Storage: In-memory

Usage:
    from pricesync.middleware.rate_limit import limiter, RATE_LIMIT_SYNC

    @router.post("/sync")
    @limiter.limit(RATE_LIMIT_SYNC)
    async def sync(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from pricesync.config import settings
from pricesync.schemas.errors import ErrorDetail
from pricesync.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_HEALTH,
    RATE_LIMIT_QUOTES,
    RATE_LIMIT_SYNC,
)

logger = logging.getLogger(__name__)

# Fallback Retry-After when the exceeded limit does not report its window
INBOUND_RETRY_AFTER_SECONDS = 60


def _is_trusted_proxy(request: Request) -> bool:
    if settings.trust_proxy_headers:
        return True
    return get_remote_address(request) in settings.trusted_proxy_ips


def _get_client_ip(request: Request) -> str:
    """
    Client IP, trusting X-Forwarded-For / X-Real-IP only when the immediate
    peer is a trusted proxy (otherwise any client could pick its own key).
    """
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=not settings.is_test,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same ErrorDetail shape as every other API error."""
    retry_after = _retry_after(exc)
    logger.warning(f"Inbound limit exceeded for {_get_client_ip(request)}: {exc.detail}")

    body = ErrorDetail(
        error="RateLimitError",
        message=f"Too many requests ({exc.detail}). Provider quotas are shared by all clients.",
        details={"retry_after": retry_after},
    )
    return JSONResponse(
        status_code=429,
        content=body.model_dump(),
        headers={"Retry-After": str(retry_after)},
    )


def _retry_after(exc: RateLimitExceeded) -> int:
    """Length of the exceeded window in seconds ("10/minute" -> 60)."""
    item = getattr(getattr(exc, "limit", None), "limit", None)
    if item is None:
        return INBOUND_RETRY_AFTER_SECONDS
    return int(item.get_expiry())


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_SYNC",
    "RATE_LIMIT_QUOTES",
    "RATE_LIMIT_HEALTH",
]

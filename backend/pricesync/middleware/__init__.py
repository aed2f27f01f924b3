# backend/pricesync/middleware/__init__.py
"""
ASGI middleware:
- Correlation id tracking for request tracing
- Inbound rate limiting (slowapi)

Usage:
    from pricesync.middleware import CorrelationIdMiddleware, limiter

    app.add_middleware(CorrelationIdMiddleware)
    app.state.limiter = limiter
"""

from pricesync.middleware.correlation import CorrelationIdMiddleware
from pricesync.middleware.rate_limit import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_HEALTH,
    RATE_LIMIT_QUOTES,
    RATE_LIMIT_SYNC,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)

__all__ = [
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_SYNC",
    "RATE_LIMIT_QUOTES",
    "RATE_LIMIT_HEALTH",
]

# backend/pricesync/utils/context.py
"""
Correlation id storage for request and sync-cycle tracing.

Uses contextvars, so the id set by the HTTP middleware (or by a sync cycle
started outside a request) follows every asyncio task spawned from that
context and shows up in every log line via CorrelationIdFilter.

Usage:
    from pricesync.utils.context import correlation_scope, get_correlation_id

    with correlation_scope():            # reuses the active id or makes one
        logger.info("sync started")      # ... | 3f2b... | ...
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Correlation id of the current request / sync cycle, or None."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def new_correlation_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Run a block under a correlation id.

    Keeps the active id when there is one (a sync started by an HTTP request
    logs under the request's id); otherwise uses `correlation_id` or a fresh
    UUID and restores the previous value on exit.
    """
    active = get_correlation_id()
    if active and correlation_id is None:
        yield active
        return

    token = _correlation_id_var.set(correlation_id or new_correlation_id())
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)

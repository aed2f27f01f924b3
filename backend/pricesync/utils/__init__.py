# backend/pricesync/utils/__init__.py
"""
Cross-cutting utilities.

- logging: Logging setup with correlation id support
- context: Correlation id storage (contextvars)

Usage:
    from pricesync.utils import setup_logging
    from pricesync.utils import correlation_scope, get_correlation_id
"""

from pricesync.utils.context import (
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    new_correlation_id,
    set_correlation_id,
)
from pricesync.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "new_correlation_id",
    "correlation_scope",
]

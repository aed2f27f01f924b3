# backend/pricesync/services/market_data/__init__.py
"""
Market data: provider adapters and the sync pipeline built on them.

Usage:
    from pricesync.services.market_data import ProviderRegistry, SyncOrchestrator

    registry = ProviderRegistry(settings)
    orchestrator = SyncOrchestrator.from_registry(registry, settings)
    report = await orchestrator.sync(investments)
"""

from pricesync.services.market_data.base import ProviderAdapter, Quote
from pricesync.services.market_data.fallback import FallbackResolver
from pricesync.services.market_data.overview import MarketOverview, MarketOverviewService
from pricesync.services.market_data.rate_limiter import (
    ProviderConfig,
    ProviderCredentials,
    RateLimiter,
    RateQuota,
)
from pricesync.services.market_data.registry import ADAPTER_CLASSES, ProviderRegistry, ProviderStatus
from pricesync.services.market_data.sync_service import (
    ItemOutcome,
    ItemState,
    SyncFailure,
    SyncOrchestrator,
    SyncReport,
)

__all__ = [
    "ProviderAdapter",
    "Quote",
    "RateLimiter",
    "RateQuota",
    "ProviderConfig",
    "ProviderCredentials",
    "FallbackResolver",
    "ProviderRegistry",
    "ProviderStatus",
    "ADAPTER_CLASSES",
    "SyncOrchestrator",
    "SyncReport",
    "SyncFailure",
    "ItemOutcome",
    "ItemState",
    "MarketOverview",
    "MarketOverviewService",
]

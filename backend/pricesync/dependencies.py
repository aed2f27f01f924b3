# backend/pricesync/dependencies.py
"""
Dependency injection for FastAPI.

Singletons shared across all requests, created lazily on first use so that
importing the app has no side effects (tests override these before any
provider is built).

Order matters: the registry is built first; everything that talks to a
provider shares it, so every request goes through the same rate limiter
and circuit breakers.

Usage in routers:
    @router.post("/sync")
    async def sync(orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator)):
        ...
"""

import logging
from functools import lru_cache

from pricesync.config import settings
from pricesync.services.market_data import (
    MarketOverviewService,
    ProviderRegistry,
    SyncOrchestrator,
)
from pricesync.services.valuation import PortfolioValuationEngine

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_provider_registry() -> ProviderRegistry:
    """
    Raises:
        ConfigurationError: A routed provider is missing its credential
    """
    return ProviderRegistry(settings)


@lru_cache(maxsize=1)
def get_sync_orchestrator() -> SyncOrchestrator:
    return SyncOrchestrator.from_registry(get_provider_registry(), settings)


@lru_cache(maxsize=1)
def get_valuation_engine() -> PortfolioValuationEngine:
    return PortfolioValuationEngine()


@lru_cache(maxsize=1)
def get_market_overview_service() -> MarketOverviewService:
    return MarketOverviewService(get_provider_registry(), settings.market_indices)


async def close_provider_registry() -> None:
    """Close the shared HTTP client if the registry was ever built."""
    if get_provider_registry.cache_info().currsize:
        await get_provider_registry().aclose()
        get_provider_registry.cache_clear()
        get_sync_orchestrator.cache_clear()
        get_market_overview_service.cache_clear()

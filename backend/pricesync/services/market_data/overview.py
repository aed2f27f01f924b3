# backend/pricesync/services/market_data/overview.py
"""
Market overview: quotes for a fixed list of headline indices.

Indices are fetched through the stock route (rate limited, breaker
guarded, with fallback). An index that cannot be fetched is logged and
left out; the overview itself only fails when the stock route is empty.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from pricesync.models import InvestmentType
from pricesync.services.exceptions import ConfigurationError, MarketDataError
from pricesync.services.market_data.base import Quote
from pricesync.services.market_data.registry import ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass
class MarketOverview:
    indices: list[Quote] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MarketOverviewService:
    """Fetches the configured index symbols."""

    def __init__(self, registry: ProviderRegistry, indices: Sequence[str]) -> None:
        self._registry = registry
        self._indices = list(indices)

    async def get_overview(self) -> MarketOverview:
        """
        Raises:
            ConfigurationError: No provider is routed for stocks
        """
        adapters = self._registry.route(InvestmentType.STOCK)
        if not adapters:
            raise ConfigurationError("No stock provider configured for market overview")

        results = await asyncio.gather(
            *(self._registry.resolver.resolve(symbol, adapters) for symbol in self._indices),
            return_exceptions=True,
        )

        overview = MarketOverview()
        for symbol, result in zip(self._indices, results):
            if isinstance(result, MarketDataError):
                logger.warning(f"Index '{symbol}' unavailable: {result.error_kind}: {result}")
                overview.failures[symbol] = result.error_kind
            elif isinstance(result, BaseException):
                raise result
            else:
                overview.indices.append(result)
        return overview

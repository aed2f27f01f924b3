# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Fake provider adapters (scripted prices, errors and delays)
- A fake clock for deterministic rate limiting
- Investment factories
"""

import asyncio
import os
from decimal import Decimal
from typing import Any

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_NAME", "Test App")

import pytest

from pricesync.models import Investment, InvestmentType
from pricesync.services.exceptions import TickerNotFoundError
from pricesync.services.market_data.base import ProviderAdapter, Quote
from pricesync.services.market_data.fallback import FallbackResolver
from pricesync.services.market_data.rate_limiter import (
    ProviderConfig,
    RateLimiter,
    RateQuota,
)

# Fast enough that rate limiting never slows a test down
UNLIMITED = RateQuota(requests=1_000_000, period_seconds=1)


# =============================================================================
# FAKE CLOCK
# =============================================================================

class FakeClock:
    """Monotonic clock + async sleep pair where sleeping advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# FAKE PROVIDER ADAPTER
# =============================================================================

class FakeAdapter(ProviderAdapter):
    """
    Scripted ProviderAdapter for testing.

    Each identifier maps to a price (Decimal) or an exception instance.
    Unknown identifiers raise TickerNotFoundError. Every call is recorded.
    """

    def __init__(
            self,
            provider_id: str,
            prices: dict[str, Any] | None = None,
            delay: float = 0.0,
            quota: RateQuota = UNLIMITED,
    ):
        super().__init__(ProviderConfig(provider_id, f"https://{provider_id}.test", quota=quota))
        self.prices = dict(prices or {})
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_quote(self, identifier: str) -> Quote:
        self.calls.append(identifier)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)

            result = self.prices.get(identifier)
            if result is None:
                raise TickerNotFoundError(identifier, self.provider_id)
            if isinstance(result, BaseException):
                raise result
            return self._quote(symbol=identifier, price=result)
        finally:
            self.in_flight -= 1


def make_resolver(*adapters: ProviderAdapter, breakers=None, attempt_timeout=None) -> FallbackResolver:
    """FallbackResolver whose limiter knows every given adapter."""
    limiter = RateLimiter([adapter.config for adapter in adapters])
    return FallbackResolver(limiter, breakers, attempt_timeout=attempt_timeout)


# =============================================================================
# INVESTMENT FACTORY
# =============================================================================

def make_investment(
        id: int | str = 1,
        type: str | InvestmentType = InvestmentType.STOCK,
        symbol: str | None = "INFY",
        quantity: str | None = "10",
        invested_amount: str = "1000",
        **fields: Any,
) -> Investment:
    """Investment built through from_record, like the API does."""
    record = {
        "id": id,
        "type": type.value if isinstance(type, InvestmentType) else type,
        "symbol": symbol,
        "quantity": quantity,
        "invested_amount": invested_amount,
        **fields,
    }
    return Investment.from_record({k: v for k, v in record.items() if v is not None})


@pytest.fixture
def investment_factory():
    return make_investment


@pytest.fixture
def sample_record() -> dict[str, Any]:
    return {
        "id": 42,
        "type": "mutual-fund",
        "scheme_code": "119551",
        "name": "Axis Bluechip Fund",
        "quantity": "150.5",
        "invested_amount": "5000",
        "current_price": "30.00",
        "current_value": "4515.00",
        "folio_number": "F-123",
        "notes": {"goal": "retirement"},
    }


@pytest.fixture
def price() -> Decimal:
    return Decimal("1500.50")

# backend/pricesync/services/market_data/fallback.py
"""
Ordered provider fallback.

Tries a priority-ordered list of adapters for one identifier and returns
the first quote that comes back. Each attempted adapter first waits on the
RateLimiter, then goes through its circuit breaker (if one is registered).

One attempt (rate-limit wait + fetch) has its own time budget. Running out
of it is a ProviderTimeoutError for that provider, and the next adapter is
tried.

No reconciliation: when several providers could answer, the first one in
configured order wins and the rest are never called.
"""

import asyncio
import logging
from typing import Mapping, Sequence

from pricesync.services.circuit_breaker import CircuitBreaker
from pricesync.services.exceptions import (
    AllProvidersExhausted,
    ConfigurationError,
    MarketDataError,
    ProviderTimeoutError,
)
from pricesync.services.market_data.base import ProviderAdapter, Quote
from pricesync.services.market_data.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class FallbackResolver:
    """
    Resolves one identifier against an ordered adapter chain.

    Attributes:
        _rate_limiter: Shared per-provider limiter
        _breakers: Circuit breakers keyed by provider id (optional per provider)
        _attempt_timeout: Seconds allowed for one provider attempt (None = no limit)
    """

    def __init__(
            self,
            rate_limiter: RateLimiter,
            breakers: Mapping[str, CircuitBreaker] | None = None,
            attempt_timeout: float | None = None,
    ) -> None:
        if attempt_timeout is not None and attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be positive")
        self._rate_limiter = rate_limiter
        self._breakers = dict(breakers or {})
        self._attempt_timeout = attempt_timeout

    async def resolve(self, identifier: str, adapters: Sequence[ProviderAdapter]) -> Quote:
        """
        Fetch a quote from the first adapter that succeeds.

        Args:
            identifier: Symbol or scheme code
            adapters: Adapters in priority order

        Returns:
            Quote from the first successful adapter

        Raises:
            AllProvidersExhausted: Every adapter failed (carries each error in order)
            ConfigurationError: No adapters given
        """
        if not adapters:
            raise ConfigurationError(f"No providers configured for '{identifier}'")

        attempts: list[tuple[str, MarketDataError]] = []

        for adapter in adapters:
            provider_id = adapter.provider_id
            try:
                quote = await self._attempt(adapter, identifier)
            except MarketDataError as e:
                logger.info(f"{provider_id} failed for '{identifier}': {e.error_kind}: {e}")
                attempts.append((provider_id, e))
                continue

            if attempts:
                logger.info(
                    f"Resolved '{identifier}' via {provider_id} after "
                    f"{len(attempts)} failed provider(s)"
                )
            return quote

        raise AllProvidersExhausted(identifier, attempts)

    async def _attempt(self, adapter: ProviderAdapter, identifier: str) -> Quote:
        provider_id = adapter.provider_id
        breaker = self._breakers.get(provider_id)
        if breaker is not None:
            breaker.reject_if_open()

        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            await asyncio.wait_for(self._rate_limiter.acquire(provider_id), self._attempt_timeout)
        except asyncio.TimeoutError:
            # Never reached the provider, so the breaker is not involved
            raise ProviderTimeoutError(provider_id, self._attempt_timeout) from None

        remaining = None
        if self._attempt_timeout is not None:
            remaining = max(self._attempt_timeout - (loop.time() - started), 0.0)

        if breaker is None:
            return await self._fetch(adapter, identifier, remaining)
        with breaker:
            return await self._fetch(adapter, identifier, remaining)

    async def _fetch(self, adapter: ProviderAdapter, identifier: str, timeout: float | None) -> Quote:
        try:
            return await asyncio.wait_for(adapter.fetch_quote(identifier), timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(adapter.provider_id, self._attempt_timeout) from None

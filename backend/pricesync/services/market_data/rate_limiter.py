# backend/pricesync/services/market_data/rate_limiter.py
"""
Per-provider outbound rate limiting.

Every external provider has a quota ("2/second", "10/minute", "250/day").
The RateLimiter turns that quota into a minimum interval between two
requests to the same provider and makes callers wait until the interval has
passed since the provider's last granted request.

The check of `last_request_at` and the stamping of the new value happen
under one per-provider asyncio.Lock that is held across the wait, so
concurrent callers targeting the same provider queue up (FIFO) instead of
both seeing an expired window. Callers targeting different providers use
different locks and never wait on each other.

Usage:
    limiter = RateLimiter([
        ProviderConfig("nse", "https://www.nseindia.com/api", quota=RateQuota.parse("2/second")),
    ])

    await limiter.acquire("nse")   # returns once a request is allowed
    response = await client.get(...)
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from pricesync.services.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_UNIT_SECONDS: dict[str, float] = {
    "s": 1.0, "sec": 1.0, "second": 1.0,
    "m": 60.0, "min": 60.0, "minute": 60.0,
    "h": 3600.0, "hr": 3600.0, "hour": 3600.0,
    "d": 86400.0, "day": 86400.0,
}

_QUOTA_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:/|per)\s*(\d+(?:\.\d+)?)?\s*([a-z]+?)s?\s*$")


@dataclass(frozen=True)
class RateQuota:
    """
    Allowed number of requests per period.

    Attributes:
        requests: Requests allowed per period (must be positive)
        period_seconds: Length of the period in seconds (must be positive)
    """

    requests: float
    period_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.requests <= 0:
            raise ConfigurationError(f"Rate limit must be positive, got {self.requests} requests")
        if self.period_seconds <= 0:
            raise ConfigurationError(f"Rate limit period must be positive, got {self.period_seconds}s")

    @classmethod
    def parse(cls, value: str) -> RateQuota:
        """
        Parse "<n>/<unit>" strings such as "2/second", "10/minute", "250/day"
        or "5 per 2 minutes".

        Raises:
            ConfigurationError: If the string is malformed or not positive
        """
        match = _QUOTA_PATTERN.match(value.lower()) if value else None
        if not match:
            raise ConfigurationError(f"Invalid rate limit '{value}', expected e.g. '10/minute'")

        requests, multiplier, unit = match.groups()
        if unit not in _UNIT_SECONDS:
            raise ConfigurationError(f"Invalid rate limit unit '{unit}' in '{value}'")

        period = _UNIT_SECONDS[unit] * float(multiplier or 1)
        return cls(requests=float(requests), period_seconds=period)

    @property
    def min_interval(self) -> float:
        """Minimum seconds between two consecutive requests."""
        return self.period_seconds / self.requests

    def __str__(self) -> str:
        return f"{self.requests:g}/{self.period_seconds:g}s"


@dataclass(frozen=True)
class ProviderCredentials:
    """Read-only credentials of one provider."""

    api_key: str | None = None
    access_token: str | None = None

    def __repr__(self) -> str:
        # Never leak secrets into logs
        return (
            f"ProviderCredentials(api_key={'***' if self.api_key else None}, "
            f"access_token={'***' if self.access_token else None})"
        )


@dataclass
class ProviderConfig:
    """
    Configuration of one external provider.

    Only `last_request_at` changes after construction, and only inside
    RateLimiter.acquire while holding the provider's lock.

    Attributes:
        provider_id: Unique provider identifier ("nse", "cams", ...)
        base_url: Base endpoint of the provider API
        credentials: API key / access token (possibly absent)
        quota: Allowed request rate
        last_request_at: Monotonic timestamp of the last granted request
    """

    provider_id: str
    base_url: str
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)
    quota: RateQuota = field(default_factory=lambda: RateQuota(requests=1))
    last_request_at: float | None = None

    @property
    def min_interval(self) -> float:
        return self.quota.min_interval


class RateLimiter:
    """
    Enforces a minimum interval between requests to each provider.

    Attributes:
        _configs: Provider configs keyed by provider id
        _locks: One asyncio.Lock per provider
        _clock: Monotonic clock (injectable for tests)
        _sleep: Async sleep (injectable for tests)
    """

    def __init__(
            self,
            configs: Iterable[ProviderConfig] = (),
            clock: Callable[[], float] = time.monotonic,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._configs: dict[str, ProviderConfig] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._clock = clock
        self._sleep = sleep

        for config in configs:
            self.register(config)

    def register(self, config: ProviderConfig) -> None:
        """
        Add a provider.

        Raises:
            ConfigurationError: If the provider id is already registered
        """
        if config.provider_id in self._configs:
            raise ConfigurationError(
                f"Provider '{config.provider_id}' registered twice",
                provider=config.provider_id,
            )
        self._configs[config.provider_id] = config
        self._locks[config.provider_id] = asyncio.Lock()
        logger.debug(
            f"RateLimiter: registered '{config.provider_id}' "
            f"(quota={config.quota}, min_interval={config.min_interval:.3f}s)"
        )

    @property
    def provider_ids(self) -> list[str]:
        return list(self._configs)

    def get_config(self, provider_id: str) -> ProviderConfig:
        """
        Raises:
            ConfigurationError: If the provider is not registered
        """
        try:
            return self._configs[provider_id]
        except KeyError:
            raise ConfigurationError(
                f"No rate limit configured for provider '{provider_id}'",
                provider=provider_id,
            ) from None

    async def acquire(self, provider_id: str) -> None:
        """
        Wait until a request to `provider_id` is allowed, then claim the slot.

        Raises:
            ConfigurationError: If the provider is not registered
        """
        config = self.get_config(provider_id)

        async with self._locks[provider_id]:
            if config.last_request_at is not None:
                wait = config.last_request_at + config.min_interval - self._clock()
                if wait > 0:
                    logger.debug(f"RateLimiter: waiting {wait:.3f}s for '{provider_id}'")
                    await self._sleep(wait)
            config.last_request_at = self._clock()

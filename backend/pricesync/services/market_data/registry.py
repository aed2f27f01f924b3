# backend/pricesync/services/market_data/registry.py
"""
Provider registry: builds every provider object once from Settings.

Owns:
- one ProviderConfig per provider (endpoint, credentials, quota)
- the shared RateLimiter and FallbackResolver
- one adapter and one circuit breaker per provider
- the shared httpx.AsyncClient

Providers named by a route are required: building one without its
credential raises ConfigurationError at startup. Providers no route uses
are built when their credentials are present (so GET /quotes?provider=...
can reach them) and silently left out otherwise.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

import httpx

from pricesync.config import KNOWN_PROVIDERS, Settings
from pricesync.models import InvestmentType
from pricesync.services import constants as c
from pricesync.services.circuit_breaker import CircuitBreaker
from pricesync.services.exceptions import ConfigurationError
from pricesync.services.market_data.base import ProviderAdapter
from pricesync.services.market_data.exchanges import BSEAdapter, NSEAdapter, ZerodhaAdapter
from pricesync.services.market_data.fallback import FallbackResolver
from pricesync.services.market_data.fund_nav import CAMSAdapter, KarvyAdapter, MoneyControlAdapter
from pricesync.services.market_data.global_quotes import (
    AlphaVantageAdapter,
    FMPAdapter,
    TwelveDataAdapter,
)
from pricesync.services.market_data.rate_limiter import (
    ProviderConfig,
    ProviderCredentials,
    RateLimiter,
    RateQuota,
)
from pricesync.services.market_data.yahoo import YahooQuoteAdapter

logger = logging.getLogger(__name__)

ADAPTER_CLASSES: dict[str, type[ProviderAdapter]] = {
    c.PROVIDER_NSE: NSEAdapter,
    c.PROVIDER_BSE: BSEAdapter,
    c.PROVIDER_ZERODHA: ZerodhaAdapter,
    c.PROVIDER_CAMS: CAMSAdapter,
    c.PROVIDER_KARVY: KarvyAdapter,
    c.PROVIDER_MONEYCONTROL: MoneyControlAdapter,
    c.PROVIDER_ALPHA_VANTAGE: AlphaVantageAdapter,
    c.PROVIDER_FMP: FMPAdapter,
    c.PROVIDER_TWELVE_DATA: TwelveDataAdapter,
    c.PROVIDER_YAHOO: YahooQuoteAdapter,
}


@dataclass(frozen=True)
class ProviderStatus:
    """Read-only view of one provider for GET /providers."""

    provider_id: str
    base_url: str
    quota: str
    requires_credentials: bool
    routes: list[str]
    breaker_state: str
    breaker_rejected_calls: int


class ProviderRegistry:
    """
    Builds and holds all provider objects.

    Example:
        registry = ProviderRegistry(settings)
        adapters = registry.route(InvestmentType.MUTUAL_FUND)
        quote = await registry.resolver.resolve("119551", adapters)
        await registry.aclose()
    """

    def __init__(
            self,
            settings: Settings,
            client: httpx.AsyncClient | None = None,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Raises:
            ConfigurationError: A routed provider lacks a credential or has an invalid quota
        """
        self._settings = settings
        self._routes = {name: list(route) for name, route in settings.routes.items()}
        routed = {provider_id for route in self._routes.values() for provider_id in route}

        # Every check that can fail runs before the shared client exists
        configs: dict[str, ProviderConfig] = {}
        for provider_id in KNOWN_PROVIDERS:
            try:
                configs[provider_id] = self._config_for(provider_id)
            except ConfigurationError as e:
                if provider_id in routed:
                    raise
                logger.debug(f"Provider '{provider_id}' not enabled: {e}")

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self.rate_limiter = RateLimiter(clock=clock)
        self._adapters: dict[str, ProviderAdapter] = {}
        self._breakers: dict[str, CircuitBreaker] = {}

        for config in configs.values():
            self._build(config, clock)

        self.resolver = FallbackResolver(
            self.rate_limiter,
            self._breakers,
            attempt_timeout=settings.sync_attempt_timeout_seconds,
        )

        logger.info(
            f"ProviderRegistry ready: providers={sorted(self._adapters)}, "
            f"routes={self._routes}"
        )

    def _config_for(self, provider_id: str) -> ProviderConfig:
        """
        Raises:
            ConfigurationError: Missing credential or invalid quota
        """
        api_key, access_token = self._settings.provider_credentials(provider_id)
        config = ProviderConfig(
            provider_id=provider_id,
            base_url=self._settings.provider_base_url(provider_id),
            credentials=ProviderCredentials(api_key=api_key, access_token=access_token),
            quota=RateQuota.parse(self._settings.provider_rate_limit(provider_id)),
        )
        ADAPTER_CLASSES[provider_id].check_credentials(config)
        return config

    def _build(self, config: ProviderConfig, clock: Callable[[], float]) -> None:
        provider_id = config.provider_id
        adapter_class = ADAPTER_CLASSES[provider_id]
        kwargs = {"client": self._client, "timeout": self._settings.http_timeout_seconds}
        if adapter_class is YahooQuoteAdapter:
            kwargs["default_suffix"] = self._settings.yahoo_default_suffix
        adapter = adapter_class(config, **kwargs)

        self.rate_limiter.register(config)
        self._adapters[provider_id] = adapter
        self._breakers[provider_id] = CircuitBreaker(
            name=provider_id,
            failure_threshold=self._settings.breaker_failure_threshold,
            recovery_timeout=self._settings.breaker_recovery_seconds,
            clock=clock,
        )

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def adapter(self, provider_id: str) -> ProviderAdapter:
        """
        Raises:
            ConfigurationError: Unknown provider or provider not enabled
        """
        try:
            return self._adapters[provider_id]
        except KeyError:
            raise ConfigurationError(
                f"Provider '{provider_id}' is not enabled "
                f"(enabled: {', '.join(sorted(self._adapters))})",
                provider=provider_id,
            ) from None

    def route(self, investment_type: InvestmentType | str) -> list[ProviderAdapter]:
        """Adapters for a type in priority order ([] when the type is not priced)."""
        key = InvestmentType.parse(investment_type).value
        return [self._adapters[provider_id] for provider_id in self._routes.get(key, [])]

    def breaker(self, provider_id: str) -> CircuitBreaker:
        self.adapter(provider_id)
        return self._breakers[provider_id]

    def available_providers(self) -> list[ProviderStatus]:
        statuses = []
        for provider_id, adapter in self._adapters.items():
            breaker = self._breakers[provider_id]
            statuses.append(ProviderStatus(
                provider_id=provider_id,
                base_url=adapter.config.base_url,
                quota=str(adapter.config.quota),
                requires_credentials=adapter.requires_credentials,
                routes=[name for name, route in self._routes.items() if provider_id in route],
                breaker_state=breaker.state.value,
                breaker_rejected_calls=breaker.stats.rejected_calls,
            ))
        return statuses

    async def aclose(self) -> None:
        """Close the shared HTTP client if the registry created it."""
        if self._owns_client:
            await self._client.aclose()

# backend/pricesync/services/market_data/base.py
"""
Abstract interface for market data provider adapters.

This module defines the contract every provider adapter follows and the one
canonical Quote they all produce. Callers never see provider-specific
response shapes: each adapter maps its provider's JSON into a Quote or into
one of the two error kinds (TransientProviderError / PermanentProviderError).

Design Principles:
- One adapter per external source, one request per fetch_quote() call
- No retries and no rate limiting inside adapters (orchestration concerns)
- Credentials checked at construction: a missing key fails fast
- HTTP status / transport failures classified once, in the base class
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from pricesync.services.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from pricesync.services.exceptions import (
    ConfigurationError,
    PermanentProviderError,
    ProviderAuthError,
    ProviderSchemaError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from pricesync.services.market_data.rate_limiter import ProviderConfig

logger = logging.getLogger(__name__)

# Browser-like headers; the exchange and aggregator sites reject bare clients
BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}


# =============================================================================
# CANONICAL QUOTE
# =============================================================================

@dataclass(frozen=True)
class Quote:
    """
    Single normalized market-data snapshot for one symbol/scheme.

    Quotes are never persisted; they update an Investment and are discarded.
    For mutual funds `price` is the NAV and intraday fields are usually None.

    Attributes:
        symbol: Symbol or scheme code as reported by the provider
        price: Last traded price / NAV (positive)
        provider: Id of the provider that produced the quote
        timestamp: When the quote was fetched (timezone-aware UTC)
        name: Company / scheme name
        change: Absolute change versus previous close
        change_percent: Percent change versus previous close
        volume: Traded volume
        high: Day high
        low: Day low
        open: Day open
        previous_close: Previous close / previous NAV
    """

    symbol: str
    price: Decimal
    provider: str
    timestamp: datetime
    name: str | None = None
    change: Decimal | None = None
    change_percent: Decimal | None = None
    volume: int | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    open: Decimal | None = None
    previous_close: Decimal | None = None

    def __post_init__(self) -> None:
        """Validate price data."""
        if self.price <= 0:
            raise ValueError(f"price must be positive, got {self.price}")
        if self.high is not None and self.low is not None and self.high < self.low:
            raise ValueError(f"high ({self.high}) cannot be less than low ({self.low})")
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")

    def to_dict(self) -> dict[str, Any]:
        """Canonical wire shape handed to the UI layer."""
        return {
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "volume": self.volume,
            "high": self.high,
            "low": self.low,
            "open": self.open,
            "previousClose": self.previous_close,
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider,
        }


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class ProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses implement fetch_quote() and declare which credentials they
    need. The shared `_get_json` helper performs the HTTP call and classifies
    failures:

        timeout                -> ProviderTimeoutError      (transient)
        connection failure     -> ProviderUnavailableError  (transient)
        429                    -> RateLimitError            (transient)
        5xx                    -> ProviderUnavailableError  (transient)
        401 / 403              -> ProviderAuthError         (permanent)
        404                    -> TickerNotFoundError       (permanent)
        other 4xx              -> PermanentProviderError    (permanent)
        body is not JSON       -> ProviderSchemaError       (permanent)

    Attributes:
        REQUIRED_CREDENTIALS: ProviderCredentials fields that must be set
        DEFAULT_HEADERS: Headers sent with every request
    """

    REQUIRED_CREDENTIALS: tuple[str, ...] = ()
    DEFAULT_HEADERS: dict[str, str] = {"Accept": "application/json"}

    def __init__(
            self,
            config: ProviderConfig,
            client: httpx.AsyncClient | None = None,
            timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        """
        Args:
            config: Provider endpoint, credentials and quota
            client: Shared HTTP client (a private one is created if omitted)
            timeout: Per-request timeout in seconds

        Raises:
            ConfigurationError: If a required credential is missing
        """
        self.check_credentials(config)

        self._config = config
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)

    @classmethod
    def check_credentials(cls, config: ProviderConfig) -> None:
        """
        Raises:
            ConfigurationError: If a required credential is missing
        """
        missing = [
            name for name in cls.REQUIRED_CREDENTIALS
            if not getattr(config.credentials, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Provider '{config.provider_id}' requires {', '.join(missing)} "
                f"but none is configured",
                provider=config.provider_id,
            )

    @property
    def provider_id(self) -> str:
        """Unique identifier of this provider (used for routing and logs)."""
        return self._config.provider_id

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def requires_credentials(self) -> bool:
        return bool(self.REQUIRED_CREDENTIALS)

    @abstractmethod
    async def fetch_quote(self, identifier: str) -> Quote:
        """
        Fetch one quote.

        Args:
            identifier: Symbol, instrument token or scheme code

        Returns:
            Canonical Quote

        Raises:
            TransientProviderError: Timeout, 5xx, throttling
            PermanentProviderError: Unknown identifier, auth failure, bad schema
        """

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider_id={self.provider_id!r})"

    # =========================================================================
    # HTTP HELPERS
    # =========================================================================

    def _url(self, path: str) -> str:
        if not path:
            return self._config.base_url
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _get_json(
            self,
            path: str,
            identifier: str,
            params: dict[str, Any] | None = None,
            headers: dict[str, str] | None = None,
    ) -> Any:
        """GET `path` relative to the base URL and decode the JSON body."""
        url = self._url(path)
        request_headers = {**self.DEFAULT_HEADERS, **(headers or {})}

        logger.debug(f"{self.provider_id}: GET {url} params={_redact(params)}")
        try:
            response = await self._client.get(
                url,
                params=params,
                headers=request_headers,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(self.provider_id, self._timeout) from e
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(self.provider_id, f"{type(e).__name__}: {e}") from e

        self._raise_for_status(response, identifier)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderSchemaError(self.provider_id, "response body is not JSON") from e

    def _raise_for_status(self, response: httpx.Response, identifier: str) -> None:
        status = response.status_code
        if status < 400:
            return

        if status == 429:
            raise RateLimitError(self.provider_id, retry_after=_retry_after(response))
        if status >= 500:
            raise ProviderUnavailableError(self.provider_id, f"HTTP {status}")
        if status in (401, 403):
            raise ProviderAuthError(self.provider_id, f"HTTP {status}")
        if status == 404:
            raise TickerNotFoundError(identifier, self.provider_id)
        raise PermanentProviderError(
            f"Provider '{self.provider_id}' rejected request for '{identifier}': "
            f"HTTP {status} {response.text[:200]}",
            provider=self.provider_id,
        )

    # =========================================================================
    # PARSING HELPERS
    # =========================================================================

    def _field(self, data: Any, *path: str) -> Any:
        """Walk a nested dict path, raising ProviderSchemaError if absent."""
        current = data
        for key in path:
            if not isinstance(current, dict) or key not in current:
                raise ProviderSchemaError(self.provider_id, f"missing field '{'.'.join(path)}'")
            current = current[key]
        return current

    def _mapping(self, value: Any, name: str, required: bool = False) -> dict[str, Any]:
        """
        A nested JSON object. None becomes {} unless `required`; any other
        non-object is a ProviderSchemaError.
        """
        if value is None and not required:
            return {}
        if not isinstance(value, dict):
            raise ProviderSchemaError(
                self.provider_id, f"field '{name}' is not an object: {type(value).__name__}"
            )
        return value

    def _decimal(self, value: Any, name: str) -> Decimal | None:
        """Parse a provider number ("1,234.50", "1.2%", 12.3); blanks become None."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.strip().replace(",", "").rstrip("%")
            if value in ("", "-", "--", "N/A", "None"):
                return None
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ProviderSchemaError(self.provider_id, f"field '{name}' is not a number: {value!r}")
        if not result.is_finite():
            raise ProviderSchemaError(self.provider_id, f"field '{name}' is not finite: {value!r}")
        return result

    def _int(self, value: Any, name: str) -> int | None:
        number = self._decimal(value, name)
        return int(number) if number is not None else None

    def _quote(self, *, symbol: Any, price: Any, **fields: Any) -> Quote:
        """Build a Quote stamped with this provider and the current UTC time."""
        parsed_price = self._decimal(price, "price")
        if parsed_price is None:
            raise ProviderSchemaError(self.provider_id, f"no price for '{symbol}'")
        try:
            return Quote(
                symbol=str(symbol),
                price=parsed_price,
                provider=self.provider_id,
                timestamp=datetime.now(timezone.utc),
                **fields,
            )
        except ValueError as e:
            raise ProviderSchemaError(self.provider_id, str(e)) from e


def _retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if value and value.isdigit():
        return int(value)
    return None


def _redact(params: dict[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return params
    return {k: ("***" if "key" in k.lower() or "token" in k.lower() else v) for k, v in params.items()}

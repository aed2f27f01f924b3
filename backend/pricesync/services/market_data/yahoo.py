# backend/pricesync/services/market_data/yahoo.py
"""
Yahoo Finance quote adapter.

Uses the yfinance library, which is blocking, so each lookup runs in a
worker thread via asyncio.to_thread. Yahoo is keyless and covers equities,
ETFs and crypto pairs ("BTC-USD").

Identifiers:
    "INFY.NS"      passed through as-is
    "NSE:INFY"     exchange prefix mapped to a Yahoo suffix -> "INFY.NS"
    "BTC-USD"      passed through as-is
    "INFY"         gets `default_suffix` if one is configured

Limitations:
- Rate limits exist but are not documented
- Data may be delayed 15-20 minutes
"""

import asyncio
import logging
import math
from decimal import Decimal
from typing import Any

import httpx
import yfinance as yf

from pricesync.services.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from pricesync.services.exceptions import (
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from pricesync.services.market_data.base import ProviderAdapter, Quote
from pricesync.services.market_data.rate_limiter import ProviderConfig

logger = logging.getLogger(__name__)


class YahooQuoteAdapter(ProviderAdapter):
    """
    Yahoo Finance implementation of ProviderAdapter.

    Attributes:
        EXCHANGE_SUFFIXES: Our exchange codes -> Yahoo symbol suffixes
    """

    EXCHANGE_SUFFIXES: dict[str, str] = {
        "NSE": ".NS",
        "BSE": ".BO",
        "NASDAQ": "",
        "NYSE": "",
        "LSE": ".L",
    }

    def __init__(
            self,
            config: ProviderConfig,
            client: httpx.AsyncClient | None = None,
            timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
            default_suffix: str = "",
    ) -> None:
        super().__init__(config, client=client, timeout=timeout)
        self._default_suffix = default_suffix

    async def fetch_quote(self, identifier: str) -> Quote:
        yahoo_symbol = self.build_symbol(identifier)
        logger.debug(f"Fetching Yahoo quote for {yahoo_symbol}")

        try:
            snapshot = await asyncio.to_thread(self._fetch_snapshot, yahoo_symbol)
        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify(yahoo_symbol, e) from e

        return self._quote(
            symbol=yahoo_symbol,
            price=snapshot["last_price"],
            previous_close=self._decimal(snapshot["previous_close"], "previous_close"),
            open=self._decimal(snapshot["open"], "open"),
            high=self._decimal(snapshot["day_high"], "day_high"),
            low=self._decimal(snapshot["day_low"], "day_low"),
            volume=self._int(snapshot["last_volume"], "last_volume"),
            change=self._change(snapshot),
            change_percent=self._change_percent(snapshot),
        )

    def build_symbol(self, identifier: str) -> str:
        """Map an identifier to Yahoo's symbol format."""
        symbol = identifier.strip().upper()
        if ":" in symbol:
            exchange, _, ticker = symbol.partition(":")
            return f"{ticker}{self.EXCHANGE_SUFFIXES.get(exchange, '')}"
        if "." in symbol or "-" in symbol:
            return symbol
        return f"{symbol}{self._default_suffix}"

    def _fetch_snapshot(self, yahoo_symbol: str) -> dict[str, Any]:
        """Blocking yfinance call (runs in a worker thread)."""
        info = yf.Ticker(yahoo_symbol).fast_info
        snapshot = {
            name: _clean_number(getattr(info, name, None))
            for name in ("last_price", "previous_close", "open", "day_high", "day_low", "last_volume")
        }
        if snapshot["last_price"] is None:
            raise TickerNotFoundError(yahoo_symbol, self.provider_id, "no price data")
        return snapshot

    def _classify(self, yahoo_symbol: str, error: Exception) -> MarketDataError:
        error_str = str(error).lower()
        if isinstance(error, KeyError) or "not found" in error_str or "no data" in error_str:
            return TickerNotFoundError(yahoo_symbol, self.provider_id)
        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(self.provider_id)

        logger.error(f"Yahoo Finance error for {yahoo_symbol}: {error}")
        return ProviderUnavailableError(self.provider_id, str(error))

    def _change(self, snapshot: dict[str, Any]) -> Decimal | None:
        last = self._decimal(snapshot["last_price"], "last_price")
        previous = self._decimal(snapshot["previous_close"], "previous_close")
        if previous is None:
            return None
        return last - previous

    def _change_percent(self, snapshot: dict[str, Any]) -> Decimal | None:
        change = self._change(snapshot)
        previous = self._decimal(snapshot["previous_close"], "previous_close")
        if change is None or not previous:
            return None
        return change / previous * 100


def _clean_number(value: Any) -> Any:
    """yfinance reports missing values as None or NaN."""
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    return value

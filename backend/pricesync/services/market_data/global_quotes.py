# backend/pricesync/services/market_data/global_quotes.py
"""
Generic global quote APIs, each keyed by an API key.

- AlphaVantageAdapter: GLOBAL_QUOTE function
- FMPAdapter: Financial Modeling Prep /quote/{symbol}
- TwelveDataAdapter: Twelve Data /quote

These providers usually answer HTTP 200 even for errors and put the
failure in the body, so each adapter classifies its own in-body errors
after the shared status handling.
"""

import logging
from typing import Any

from pricesync.services.exceptions import (
    PermanentProviderError,
    ProviderAuthError,
    ProviderSchemaError,
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from pricesync.services.market_data.base import ProviderAdapter, Quote

logger = logging.getLogger(__name__)


class AlphaVantageAdapter(ProviderAdapter):
    """
    Alpha Vantage GLOBAL_QUOTE.

    Body conventions:
        {"Global Quote": {"01. symbol": "IBM", "05. price": "182.50", ...}}
        {"Error Message": "Invalid API call ..."}      unknown symbol / bad key
        {"Note": "..."} or {"Information": "..."}      throttled
        {"Global Quote": {}}                           unknown symbol
    """

    REQUIRED_CREDENTIALS = ("api_key",)

    async def fetch_quote(self, identifier: str) -> Quote:
        symbol = identifier.strip().upper()
        data = await self._get_json(
            "",
            symbol,
            params={
                "function": "GLOBAL_QUOTE",
                "symbol": symbol,
                "apikey": self._config.credentials.api_key,
            },
        )

        if not data:
            raise TickerNotFoundError(symbol, self.provider_id)
        data = self._mapping(data, "body", required=True)

        if "Error Message" in data:
            message = str(data["Error Message"])
            if "apikey" in message.lower():
                raise ProviderAuthError(self.provider_id, message)
            raise TickerNotFoundError(symbol, self.provider_id, message)

        if "Note" in data or "Information" in data:
            raise RateLimitError(self.provider_id)

        quote = self._mapping(data.get("Global Quote"), "Global Quote")
        if not quote:
            raise TickerNotFoundError(symbol, self.provider_id)

        return self._quote(
            symbol=quote.get("01. symbol") or symbol,
            price=quote.get("05. price"),
            change=self._decimal(quote.get("09. change"), "09. change"),
            change_percent=self._decimal(quote.get("10. change percent"), "10. change percent"),
            volume=self._int(quote.get("06. volume"), "06. volume"),
            high=self._decimal(quote.get("03. high"), "03. high"),
            low=self._decimal(quote.get("04. low"), "04. low"),
            open=self._decimal(quote.get("02. open"), "02. open"),
            previous_close=self._decimal(quote.get("08. previous close"), "08. previous close"),
        )


class FMPAdapter(ProviderAdapter):
    """
    Financial Modeling Prep quote.

    Returns a list with one entry per symbol; an empty list means the
    symbol is unknown.
    """

    REQUIRED_CREDENTIALS = ("api_key",)

    async def fetch_quote(self, identifier: str) -> Quote:
        symbol = identifier.strip().upper()
        data = await self._get_json(
            f"quote/{symbol}",
            symbol,
            params={"apikey": self._config.credentials.api_key},
        )

        if isinstance(data, dict):
            message = str(data.get("Error Message") or data.get("error") or data)
            if "api key" in message.lower() or "apikey" in message.lower():
                raise ProviderAuthError(self.provider_id, message)
            raise PermanentProviderError(
                f"Provider '{self.provider_id}' error for '{symbol}': {message}",
                provider=self.provider_id,
            )

        if not data:
            raise TickerNotFoundError(symbol, self.provider_id)
        if not isinstance(data, list):
            raise ProviderSchemaError(
                self.provider_id, f"expected a list, got {type(data).__name__}"
            )

        quote = self._mapping(data[0], "[0]", required=True)
        return self._quote(
            symbol=quote.get("symbol") or symbol,
            name=quote.get("name"),
            price=quote.get("price"),
            change=self._decimal(quote.get("change"), "change"),
            change_percent=self._decimal(quote.get("changesPercentage"), "changesPercentage"),
            volume=self._int(quote.get("volume"), "volume"),
            high=self._decimal(quote.get("dayHigh"), "dayHigh"),
            low=self._decimal(quote.get("dayLow"), "dayLow"),
            open=self._decimal(quote.get("open"), "open"),
            previous_close=self._decimal(quote.get("previousClose"), "previousClose"),
        )


class TwelveDataAdapter(ProviderAdapter):
    """
    Twelve Data quote.

    Errors come back as {"status": "error", "code": 404, "message": "..."}.
    All numeric fields are strings.
    """

    REQUIRED_CREDENTIALS = ("api_key",)

    async def fetch_quote(self, identifier: str) -> Quote:
        symbol = identifier.strip().upper()
        data = await self._get_json(
            "quote",
            symbol,
            params={"symbol": symbol, "apikey": self._config.credentials.api_key},
        )

        if isinstance(data, dict) and data.get("status") == "error":
            self._raise_body_error(symbol, data)

        data = self._mapping(data, "body", required=True)
        return self._quote(
            symbol=self._field(data, "symbol"),
            name=data.get("name"),
            price=data.get("close"),
            change=self._decimal(data.get("change"), "change"),
            change_percent=self._decimal(data.get("percent_change"), "percent_change"),
            volume=self._int(data.get("volume"), "volume"),
            high=self._decimal(data.get("high"), "high"),
            low=self._decimal(data.get("low"), "low"),
            open=self._decimal(data.get("open"), "open"),
            previous_close=self._decimal(data.get("previous_close"), "previous_close"),
        )

    def _raise_body_error(self, symbol: str, data: dict[str, Any]) -> None:
        message = str(data.get("message", "unknown error"))
        try:
            code = int(data.get("code") or 0)
        except (TypeError, ValueError):
            code = 0

        if code == 429:
            raise RateLimitError(self.provider_id)
        if code in (401, 403):
            raise ProviderAuthError(self.provider_id, message)
        if code in (400, 404):
            raise TickerNotFoundError(symbol, self.provider_id, message)
        if code >= 500:
            raise ProviderUnavailableError(self.provider_id, message)
        raise PermanentProviderError(
            f"Provider '{self.provider_id}' error for '{symbol}': {message}",
            provider=self.provider_id,
        )

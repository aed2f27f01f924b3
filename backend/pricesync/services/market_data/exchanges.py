# backend/pricesync/services/market_data/exchanges.py
"""
Equity quote adapters for Indian exchanges and brokers.

- NSEAdapter: NSE India public quote API (keyless, browser headers)
- BSEAdapter: BSE India scrip quote API (keyless, browser headers)
- ZerodhaAdapter: Kite Connect quote API (API key + access token)

Limitations:
- The exchange sites are unofficial JSON endpoints and throttle aggressively
- NSE also serves indices ("NIFTY 50") through the same endpoint
"""

import logging
from decimal import Decimal

from pricesync.services.exceptions import (
    PermanentProviderError,
    ProviderAuthError,
    ProviderUnavailableError,
    TickerNotFoundError,
)
from pricesync.services.market_data.base import BROWSER_HEADERS, ProviderAdapter, Quote

logger = logging.getLogger(__name__)


class NSEAdapter(ProviderAdapter):
    """
    NSE India equity quotes.

    Response shape (abridged):
        {"info": {"symbol": "INFY", "companyName": "Infosys Limited"},
         "priceInfo": {"lastPrice": 1500.5, "change": 10.5, "pChange": 0.7,
                       "open": 1490, "previousClose": 1490,
                       "intraDayHighLow": {"min": 1485, "max": 1505}},
         ...}
    Unknown symbols come back as {} or {"info": {"error": "..."}}.
    """

    DEFAULT_HEADERS = {**BROWSER_HEADERS, "Referer": "https://www.nseindia.com/"}

    async def fetch_quote(self, identifier: str) -> Quote:
        symbol = identifier.strip().upper()
        data = await self._get_json("quote-equity", symbol, params={"symbol": symbol})

        if not data:
            raise TickerNotFoundError(symbol, self.provider_id)

        data = self._mapping(data, "body", required=True)
        info = self._mapping(data.get("info"), "info")
        if info.get("error"):
            raise TickerNotFoundError(symbol, self.provider_id, str(info["error"]))

        price_info = self._mapping(self._field(data, "priceInfo"), "priceInfo", required=True)
        high_low = self._mapping(price_info.get("intraDayHighLow"), "priceInfo.intraDayHighLow")

        return self._quote(
            symbol=info.get("symbol") or symbol,
            name=info.get("companyName"),
            price=price_info.get("lastPrice"),
            change=self._decimal(price_info.get("change"), "change"),
            change_percent=self._decimal(price_info.get("pChange"), "pChange"),
            volume=self._int(price_info.get("totalTradedVolume"), "totalTradedVolume"),
            high=self._decimal(high_low.get("max"), "intraDayHighLow.max"),
            low=self._decimal(high_low.get("min"), "intraDayHighLow.min"),
            open=self._decimal(price_info.get("open"), "open"),
            previous_close=self._decimal(price_info.get("previousClose"), "previousClose"),
        )


class BSEAdapter(ProviderAdapter):
    """
    BSE India scrip quotes, keyed by numeric scrip code (e.g. "500325").

    Response shape:
        {"companyName": "...", "currentPrice": 2500.1, "change": ..., "changePercent": ...,
         "volume": ..., "high": ..., "low": ..., "open": ..., "previousClose": ...}
    or {"error": "..."} for unknown scrips.
    """

    DEFAULT_HEADERS = {**BROWSER_HEADERS, "Referer": "https://www.bseindia.com/"}

    async def fetch_quote(self, identifier: str) -> Quote:
        scrip_code = identifier.strip()
        data = await self._get_json(
            "BseIndiaAPI/api/StockReachGraph/w",
            scrip_code,
            params={
                "scripcode": scrip_code,
                "flag": "0",
                "fromdate": "",
                "todate": "",
                "seriesid": "",
            },
        )

        if not data:
            raise TickerNotFoundError(scrip_code, self.provider_id)
        data = self._mapping(data, "body", required=True)
        if data.get("error"):
            raise TickerNotFoundError(scrip_code, self.provider_id, str(data["error"]))

        return self._quote(
            symbol=scrip_code,
            name=data.get("companyName") or scrip_code,
            price=data.get("currentPrice"),
            change=self._decimal(data.get("change"), "change"),
            change_percent=self._decimal(data.get("changePercent"), "changePercent"),
            volume=self._int(data.get("volume"), "volume"),
            high=self._decimal(data.get("high"), "high"),
            low=self._decimal(data.get("low"), "low"),
            open=self._decimal(data.get("open"), "open"),
            previous_close=self._decimal(data.get("previousClose"), "previousClose"),
        )


class ZerodhaAdapter(ProviderAdapter):
    """
    Zerodha Kite Connect quotes.

    The identifier is a Kite instrument ("NSE:INFY") or instrument token.
    Kite reports failures in-body as {"status": "error", "error_type": ..., "message": ...}.
    """

    REQUIRED_CREDENTIALS = ("api_key", "access_token")

    # Kite error types that mean our token/key is the problem
    AUTH_ERROR_TYPES = frozenset({"TokenException", "PermissionException"})
    # Kite error types caused by Kite itself being unwell
    TRANSIENT_ERROR_TYPES = frozenset({"NetworkException", "DataException", "GeneralException"})

    async def fetch_quote(self, identifier: str) -> Quote:
        instrument = identifier.strip()
        credentials = self._config.credentials
        data = await self._get_json(
            "quote",
            instrument,
            params={"i": instrument},
            headers={
                "X-Kite-Version": "3",
                "Authorization": f"token {credentials.api_key}:{credentials.access_token}",
            },
        )

        if isinstance(data, dict) and data.get("status") == "error":
            self._raise_kite_error(instrument, data)

        data = self._mapping(data, "body", required=True)
        quote = self._mapping(self._field(data, "data"), "data").get(instrument)
        if not quote:
            raise TickerNotFoundError(instrument, self.provider_id)

        quote = self._mapping(quote, f"data.{instrument}", required=True)
        ohlc = self._mapping(quote.get("ohlc"), "ohlc")
        price = self._decimal(quote.get("last_price"), "last_price")
        previous_close = self._decimal(ohlc.get("close"), "ohlc.close")
        change = self._decimal(quote.get("net_change", quote.get("change")), "net_change")
        change_percent = self._decimal(quote.get("change_percent"), "change_percent")
        if change_percent is None and change is not None and previous_close:
            change_percent = change / previous_close * Decimal("100")

        return self._quote(
            symbol=quote.get("tradingsymbol") or instrument,
            name=quote.get("name"),
            price=price,
            change=change,
            change_percent=change_percent,
            volume=self._int(quote.get("volume", quote.get("volume_traded")), "volume"),
            high=self._decimal(ohlc.get("high"), "ohlc.high"),
            low=self._decimal(ohlc.get("low"), "ohlc.low"),
            open=self._decimal(ohlc.get("open"), "ohlc.open"),
            previous_close=previous_close,
        )

    def _raise_kite_error(self, instrument: str, data: dict) -> None:
        error_type = data.get("error_type", "")
        message = data.get("message", "unknown error")
        if error_type in self.AUTH_ERROR_TYPES:
            raise ProviderAuthError(self.provider_id, message)
        if error_type in self.TRANSIENT_ERROR_TYPES:
            raise ProviderUnavailableError(self.provider_id, message)
        if error_type == "InputException":
            raise TickerNotFoundError(instrument, self.provider_id, message)
        raise PermanentProviderError(
            f"Provider '{self.provider_id}' error for '{instrument}': {message}",
            provider=self.provider_id,
        )

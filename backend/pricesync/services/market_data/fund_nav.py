# backend/pricesync/services/market_data/fund_nav.py
"""
Mutual fund NAV adapters.

- CAMSAdapter: CAMS registrar NAV API (Bearer API key)
- KarvyAdapter: KARVY registrar NAV API (Bearer API key)
- MoneyControlAdapter: MoneyControl price API (keyless)

All three return the same body shape:
    {"schemeCode": "119551", "schemeName": "...", "nav": 45.67,
     "date": "2024-03-28", "change": 0.12, "changePercent": 0.26}

The NAV becomes Quote.price. Intraday fields (high/low/open/volume) do not
exist for funds and stay None.
"""

from typing import Any

from pricesync.services.exceptions import TickerNotFoundError
from pricesync.services.market_data.base import BROWSER_HEADERS, ProviderAdapter, Quote


class NavAdapter(ProviderAdapter):
    """Shared mapping of a NAV response into a Quote."""

    def _nav_quote(self, scheme_code: str, data: Any) -> Quote:
        if not data:
            raise TickerNotFoundError(scheme_code, self.provider_id)
        data = self._mapping(data, "body", required=True)
        if data.get("error") and data.get("nav") is None:
            raise TickerNotFoundError(scheme_code, self.provider_id, str(data["error"]))

        nav = self._decimal(data.get("nav"), "nav")
        change = self._decimal(data.get("change"), "change")
        previous_nav = nav - change if nav is not None and change is not None else None

        return self._quote(
            symbol=data.get("schemeCode") or scheme_code,
            name=data.get("schemeName"),
            price=nav,
            change=change,
            change_percent=self._decimal(data.get("changePercent"), "changePercent"),
            previous_close=previous_nav,
        )


class RegistrarNavAdapter(NavAdapter):
    """Registrar NAV endpoint: GET {base}/api/v1/mutual-funds/{code}/nav."""

    REQUIRED_CREDENTIALS = ("api_key",)

    async def fetch_quote(self, identifier: str) -> Quote:
        scheme_code = identifier.strip()
        data = await self._get_json(
            f"api/v1/mutual-funds/{scheme_code}/nav",
            scheme_code,
            headers={"Authorization": f"Bearer {self._config.credentials.api_key}"},
        )
        return self._nav_quote(scheme_code, data)


class CAMSAdapter(RegistrarNavAdapter):
    """CAMS (Computer Age Management Services) registrar."""


class KarvyAdapter(RegistrarNavAdapter):
    """KARVY (KFin Technologies) registrar."""


class MoneyControlAdapter(NavAdapter):
    """MoneyControl fund price API, keyed by scheme code."""

    DEFAULT_HEADERS = {**BROWSER_HEADERS, "Referer": "https://www.moneycontrol.com/"}

    async def fetch_quote(self, identifier: str) -> Quote:
        scheme_code = identifier.strip()
        data = await self._get_json("priceapi/mf/price", scheme_code, params={"scode": scheme_code})
        return self._nav_quote(scheme_code, data)

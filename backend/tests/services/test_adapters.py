# backend/tests/services/test_adapters.py
"""
Tests for the HTTP provider adapters.

This module tests:
- Credential checks at construction
- Shared HTTP status / transport classification
- Each adapter's response mapping into a Quote
- Each adapter's in-body error classification

Note: Requests never leave the process; httpx.MockTransport answers them.
"""

from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from pricesync.services.exceptions import (
    ConfigurationError,
    PermanentProviderError,
    ProviderAuthError,
    ProviderSchemaError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
    TransientProviderError,
)
from pricesync.services.market_data.base import Quote
from pricesync.services.market_data.exchanges import BSEAdapter, NSEAdapter, ZerodhaAdapter
from pricesync.services.market_data.fund_nav import CAMSAdapter, KarvyAdapter, MoneyControlAdapter
from pricesync.services.market_data.global_quotes import (
    AlphaVantageAdapter,
    FMPAdapter,
    TwelveDataAdapter,
)
from pricesync.services.market_data.rate_limiter import ProviderConfig, ProviderCredentials


# =============================================================================
# HELPERS
# =============================================================================

class Recorder:
    """MockTransport handler that answers with a fixed response and records requests."""

    def __init__(self, body=None, status: int = 200, headers: dict | None = None, text: str | None = None):
        self.body = body
        self.status = status
        self.headers = headers or {}
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text, headers=self.headers)
        return httpx.Response(self.status, json=self.body, headers=self.headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_adapter(adapter_class, handler, provider_id="test", base_url="https://provider.test/api",
                 api_key="key-123", access_token="tok-456"):
    config = ProviderConfig(
        provider_id=provider_id,
        base_url=base_url,
        credentials=ProviderCredentials(api_key=api_key, access_token=access_token),
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return adapter_class(config, client=client)


NSE_BODY = {
    "info": {"symbol": "INFY", "companyName": "Infosys Limited"},
    "priceInfo": {
        "lastPrice": 1500.5,
        "change": 10.5,
        "pChange": 0.7047,
        "open": 1490,
        "previousClose": 1490,
        "intraDayHighLow": {"min": 1485, "max": 1505.25},
    },
}

NAV_BODY = {
    "schemeCode": "119551",
    "schemeName": "Axis Bluechip Fund - Direct Growth",
    "nav": 45.67,
    "date": "2024-03-28",
    "change": 0.12,
    "changePercent": 0.26,
}


# =============================================================================
# QUOTE
# =============================================================================

class TestQuote:
    """Tests for the canonical Quote."""

    def test_to_dict(self):
        """Canonical shape uses camelCase and an ISO timestamp."""
        quote = Quote(
            symbol="INFY",
            price=Decimal("1500.5"),
            provider="nse",
            timestamp=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
            change_percent=Decimal("0.7"),
            previous_close=Decimal("1490"),
        )

        data = quote.to_dict()

        assert data["changePercent"] == Decimal("0.7")
        assert data["previousClose"] == Decimal("1490")
        assert data["timestamp"] == "2024-01-15T10:30:00+00:00"
        assert data["provider"] == "nse"
        assert data["volume"] is None

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-1")])
    def test_rejects_non_positive_price(self, price):
        with pytest.raises(ValueError, match="price must be positive"):
            Quote(symbol="X", price=price, provider="nse", timestamp=datetime.now(timezone.utc))

    def test_rejects_naive_timestamp(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            Quote(symbol="X", price=Decimal("1"), provider="nse", timestamp=datetime(2024, 1, 1))

    def test_rejects_high_below_low(self):
        with pytest.raises(ValueError):
            Quote(
                symbol="X",
                price=Decimal("1"),
                provider="nse",
                timestamp=datetime.now(timezone.utc),
                high=Decimal("1"),
                low=Decimal("2"),
            )


# =============================================================================
# CONSTRUCTION
# =============================================================================

class TestCredentials:
    """Tests for credential checks at construction."""

    @pytest.mark.parametrize("adapter_class", [
        CAMSAdapter, KarvyAdapter, AlphaVantageAdapter, FMPAdapter, TwelveDataAdapter,
    ])
    def test_missing_api_key_fails_fast(self, adapter_class):
        """Keyed adapters refuse to build without a key."""
        with pytest.raises(ConfigurationError, match="api_key"):
            make_adapter(adapter_class, Recorder(), api_key=None)

    def test_zerodha_needs_access_token(self):
        """Zerodha needs both key and token."""
        with pytest.raises(ConfigurationError, match="access_token"):
            make_adapter(ZerodhaAdapter, Recorder(), access_token=None)

    @pytest.mark.parametrize("adapter_class", [NSEAdapter, BSEAdapter, MoneyControlAdapter])
    def test_keyless_adapters(self, adapter_class):
        """Keyless adapters build without credentials."""
        adapter = make_adapter(adapter_class, Recorder(), api_key=None, access_token=None)

        assert adapter.requires_credentials is False

    def test_provider_id_from_config(self):
        """provider_id comes from the config."""
        adapter = make_adapter(NSEAdapter, Recorder(), provider_id="nse")

        assert adapter.provider_id == "nse"
        assert "nse" in repr(adapter)


# =============================================================================
# SHARED STATUS CLASSIFICATION
# =============================================================================

class TestStatusClassification:
    """Tests for the shared HTTP error mapping (exercised through NSEAdapter)."""

    @pytest.mark.parametrize("status,expected", [
        (500, ProviderUnavailableError),
        (502, ProviderUnavailableError),
        (503, ProviderUnavailableError),
        (429, RateLimitError),
        (401, ProviderAuthError),
        (403, ProviderAuthError),
        (404, TickerNotFoundError),
        (400, PermanentProviderError),
    ])
    @pytest.mark.asyncio
    async def test_status_mapping(self, status, expected):
        """Each status maps to one error class."""
        adapter = make_adapter(NSEAdapter, Recorder({"message": "nope"}, status=status))

        with pytest.raises(expected):
            await adapter.fetch_quote("INFY")

    @pytest.mark.asyncio
    async def test_5xx_is_transient(self):
        """Server errors are transient."""
        adapter = make_adapter(NSEAdapter, Recorder({}, status=503))

        with pytest.raises(TransientProviderError):
            await adapter.fetch_quote("INFY")

    @pytest.mark.asyncio
    async def test_404_is_permanent(self):
        """Unknown symbols are permanent."""
        adapter = make_adapter(NSEAdapter, Recorder({}, status=404))

        with pytest.raises(PermanentProviderError):
            await adapter.fetch_quote("NOPE")

    @pytest.mark.asyncio
    async def test_retry_after_header(self):
        """429 carries Retry-After when the provider sends it."""
        adapter = make_adapter(NSEAdapter, Recorder({}, status=429, headers={"Retry-After": "30"}))

        with pytest.raises(RateLimitError) as exc_info:
            await adapter.fetch_quote("INFY")

        assert exc_info.value.retry_after == 30

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Transport timeouts become ProviderTimeoutError."""
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        adapter = make_adapter(NSEAdapter, handler)

        with pytest.raises(ProviderTimeoutError):
            await adapter.fetch_quote("INFY")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Connection failures become ProviderUnavailableError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = make_adapter(NSEAdapter, handler)

        with pytest.raises(ProviderUnavailableError, match="ConnectError"):
            await adapter.fetch_quote("INFY")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        """An HTML page instead of JSON is a schema error."""
        adapter = make_adapter(NSEAdapter, Recorder(text="<html>blocked</html>"))

        with pytest.raises(ProviderSchemaError):
            await adapter.fetch_quote("INFY")

    @pytest.mark.asyncio
    async def test_api_key_not_logged_in_params(self, caplog):
        """Query-string keys are redacted in debug logs."""
        recorder = Recorder({"Global Quote": {"01. symbol": "IBM", "05. price": "182.5"}})
        adapter = make_adapter(AlphaVantageAdapter, recorder, api_key="very-secret")

        with caplog.at_level("DEBUG", logger="pricesync"):
            await adapter.fetch_quote("IBM")

        messages = [r.getMessage() for r in caplog.records if r.name.startswith("pricesync")]
        assert any("GET" in m for m in messages)
        assert not any("very-secret" in m for m in messages)


# =============================================================================
# EXCHANGES
# =============================================================================

class TestNSEAdapter:
    """Tests for NSE quote mapping."""

    @pytest.mark.asyncio
    async def test_maps_quote(self):
        """Should map priceInfo into a Quote."""
        recorder = Recorder(NSE_BODY)
        adapter = make_adapter(NSEAdapter, recorder, provider_id="nse")

        quote = await adapter.fetch_quote("infy")

        assert quote.symbol == "INFY"
        assert quote.name == "Infosys Limited"
        assert quote.price == Decimal("1500.5")
        assert quote.change == Decimal("10.5")
        assert quote.high == Decimal("1505.25")
        assert quote.low == Decimal("1485")
        assert quote.previous_close == Decimal("1490")
        assert quote.provider == "nse"
        assert quote.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_request_shape(self):
        """Symbol is uppercased and sent as a query parameter with browser headers."""
        recorder = Recorder(NSE_BODY)
        adapter = make_adapter(NSEAdapter, recorder)

        await adapter.fetch_quote(" infy ")

        assert recorder.last.url.path == "/api/quote-equity"
        assert recorder.last.url.params["symbol"] == "INFY"
        assert "Mozilla" in recorder.last.headers["User-Agent"]

    @pytest.mark.parametrize("body", [{}, {"info": {"error": "Symbol not found"}}])
    @pytest.mark.asyncio
    async def test_unknown_symbol(self, body):
        """Empty or error bodies mean the symbol is unknown."""
        adapter = make_adapter(NSEAdapter, Recorder(body))

        with pytest.raises(TickerNotFoundError):
            await adapter.fetch_quote("NOPE")

    @pytest.mark.asyncio
    async def test_missing_price_info(self):
        """A body without priceInfo is a schema error."""
        adapter = make_adapter(NSEAdapter, Recorder({"info": {"symbol": "INFY"}}))

        with pytest.raises(ProviderSchemaError, match="priceInfo"):
            await adapter.fetch_quote("INFY")

    @pytest.mark.asyncio
    async def test_zero_price(self):
        """A zero price is never turned into a Quote."""
        body = {"info": {"symbol": "INFY"}, "priceInfo": {"lastPrice": 0}}
        adapter = make_adapter(NSEAdapter, Recorder(body))

        with pytest.raises(ProviderSchemaError):
            await adapter.fetch_quote("INFY")


class TestBSEAdapter:
    """Tests for BSE quote mapping."""

    @pytest.mark.asyncio
    async def test_maps_quote(self):
        """Should map the flat BSE body."""
        body = {
            "companyName": "Reliance Industries",
            "currentPrice": "2,500.10",
            "change": "-12.40",
            "changePercent": "-0.49",
            "volume": "123456",
            "high": "2520",
            "low": "2490",
            "open": "2510",
            "previousClose": "2512.50",
        }
        recorder = Recorder(body)
        adapter = make_adapter(BSEAdapter, recorder)

        quote = await adapter.fetch_quote("500325")

        assert quote.price == Decimal("2500.10")
        assert quote.change == Decimal("-12.40")
        assert quote.volume == 123456
        assert quote.name == "Reliance Industries"
        assert recorder.last.url.params["scripcode"] == "500325"

    @pytest.mark.asyncio
    async def test_error_body(self):
        """An error body means the scrip is unknown."""
        adapter = make_adapter(BSEAdapter, Recorder({"error": "Invalid scrip code"}))

        with pytest.raises(TickerNotFoundError, match="Invalid scrip code"):
            await adapter.fetch_quote("999999")


class TestZerodhaAdapter:
    """Tests for Kite Connect quote mapping."""

    BODY = {
        "status": "success",
        "data": {
            "NSE:INFY": {
                "tradingsymbol": "INFY",
                "last_price": 1500.5,
                "net_change": 10.5,
                "volume": 1000,
                "ohlc": {"open": 1490, "high": 1505, "low": 1485, "close": 1490},
            }
        },
    }

    @pytest.mark.asyncio
    async def test_maps_quote(self):
        """Should map data[instrument] and derive change percent from close."""
        adapter = make_adapter(ZerodhaAdapter, Recorder(self.BODY))

        quote = await adapter.fetch_quote("NSE:INFY")

        assert quote.symbol == "INFY"
        assert quote.price == Decimal("1500.5")
        assert quote.previous_close == Decimal("1490")
        assert quote.change_percent == Decimal("10.5") / Decimal("1490") * 100

    @pytest.mark.asyncio
    async def test_sends_kite_headers(self):
        """Authorization uses 'token key:access_token'."""
        recorder = Recorder(self.BODY)
        adapter = make_adapter(ZerodhaAdapter, recorder, api_key="k", access_token="t")

        await adapter.fetch_quote("NSE:INFY")

        assert recorder.last.headers["Authorization"] == "token k:t"
        assert recorder.last.headers["X-Kite-Version"] == "3"
        assert recorder.last.url.params["i"] == "NSE:INFY"

    @pytest.mark.asyncio
    async def test_missing_instrument(self):
        """An instrument absent from data is unknown."""
        adapter = make_adapter(ZerodhaAdapter, Recorder({"status": "success", "data": {}}))

        with pytest.raises(TickerNotFoundError):
            await adapter.fetch_quote("NSE:NOPE")

    @pytest.mark.parametrize("error_type,expected", [
        ("TokenException", ProviderAuthError),
        ("PermissionException", ProviderAuthError),
        ("NetworkException", ProviderUnavailableError),
        ("GeneralException", ProviderUnavailableError),
        ("InputException", TickerNotFoundError),
        ("OrderException", PermanentProviderError),
    ])
    @pytest.mark.asyncio
    async def test_in_body_errors(self, error_type, expected):
        """Kite error types map to our error classes."""
        body = {"status": "error", "error_type": error_type, "message": "bad"}
        adapter = make_adapter(ZerodhaAdapter, Recorder(body))

        with pytest.raises(expected):
            await adapter.fetch_quote("NSE:INFY")


# =============================================================================
# MUTUAL FUND NAV
# =============================================================================

class TestNavAdapters:
    """Tests for CAMS, KARVY and MoneyControl NAV mapping."""

    @pytest.mark.parametrize("adapter_class", [CAMSAdapter, KarvyAdapter, MoneyControlAdapter])
    @pytest.mark.asyncio
    async def test_maps_nav(self, adapter_class):
        """NAV becomes the price; previous NAV is nav - change."""
        adapter = make_adapter(adapter_class, Recorder(NAV_BODY))

        quote = await adapter.fetch_quote("119551")

        assert quote.price == Decimal("45.67")
        assert quote.previous_close == Decimal("45.55")
        assert quote.change_percent == Decimal("0.26")
        assert quote.name == "Axis Bluechip Fund - Direct Growth"
        assert quote.high is None
        assert quote.volume is None

    @pytest.mark.asyncio
    async def test_registrar_request(self):
        """Registrars take the scheme code in the path and a Bearer key."""
        recorder = Recorder(NAV_BODY)
        adapter = make_adapter(CAMSAdapter, recorder, base_url="https://cams.test", api_key="cams-key")

        await adapter.fetch_quote("119551")

        assert recorder.last.url.path == "/api/v1/mutual-funds/119551/nav"
        assert recorder.last.headers["Authorization"] == "Bearer cams-key"

    @pytest.mark.asyncio
    async def test_moneycontrol_request(self):
        """MoneyControl takes the scheme code as 'scode'."""
        recorder = Recorder(NAV_BODY)
        adapter = make_adapter(MoneyControlAdapter, recorder, base_url="https://mc.test")

        await adapter.fetch_quote("119551")

        assert recorder.last.url.path == "/priceapi/mf/price"
        assert recorder.last.url.params["scode"] == "119551"

    @pytest.mark.parametrize("body", [{}, [], {"error": "Scheme not found"}])
    @pytest.mark.asyncio
    async def test_unknown_scheme(self, body):
        """Empty and error bodies mean the scheme is unknown."""
        adapter = make_adapter(CAMSAdapter, Recorder(body))

        with pytest.raises(TickerNotFoundError):
            await adapter.fetch_quote("000000")

    @pytest.mark.asyncio
    async def test_missing_nav(self):
        """A body without a NAV cannot be priced."""
        adapter = make_adapter(KarvyAdapter, Recorder({"schemeCode": "119551"}))

        with pytest.raises(ProviderSchemaError):
            await adapter.fetch_quote("119551")


# =============================================================================
# GLOBAL QUOTE APIS
# =============================================================================

class TestAlphaVantageAdapter:
    """Tests for Alpha Vantage GLOBAL_QUOTE."""

    @pytest.mark.asyncio
    async def test_maps_quote(self):
        """Should map the numbered fields."""
        body = {"Global Quote": {
            "01. symbol": "IBM",
            "02. open": "180.00",
            "03. high": "183.00",
            "04. low": "179.50",
            "05. price": "182.50",
            "06. volume": "3500000",
            "08. previous close": "181.00",
            "09. change": "1.50",
            "10. change percent": "0.8287%",
        }}
        recorder = Recorder(body)
        adapter = make_adapter(AlphaVantageAdapter, recorder)

        quote = await adapter.fetch_quote("ibm")

        assert quote.price == Decimal("182.50")
        assert quote.change_percent == Decimal("0.8287")
        assert quote.volume == 3500000
        assert recorder.last.url.params["function"] == "GLOBAL_QUOTE"
        assert recorder.last.url.params["apikey"] == "key-123"

    @pytest.mark.parametrize("body,expected", [
        ({"Error Message": "Invalid API call."}, TickerNotFoundError),
        ({"Error Message": "the parameter apikey is invalid or missing"}, ProviderAuthError),
        ({"Note": "Thank you for using Alpha Vantage! ..."}, RateLimitError),
        ({"Information": "daily limit reached"}, RateLimitError),
        ({"Global Quote": {}}, TickerNotFoundError),
    ])
    @pytest.mark.asyncio
    async def test_in_body_errors(self, body, expected):
        """Alpha Vantage answers 200 with errors in the body."""
        adapter = make_adapter(AlphaVantageAdapter, Recorder(body))

        with pytest.raises(expected):
            await adapter.fetch_quote("IBM")


class TestFMPAdapter:
    """Tests for Financial Modeling Prep."""

    @pytest.mark.asyncio
    async def test_maps_first_entry(self):
        """Should map the first list entry."""
        body = [{
            "symbol": "AAPL",
            "name": "Apple Inc.",
            "price": 189.84,
            "changesPercentage": 1.2,
            "change": 2.25,
            "dayLow": 187.0,
            "dayHigh": 190.5,
            "volume": 50000000,
            "open": 188.0,
            "previousClose": 187.59,
        }]
        recorder = Recorder(body)
        adapter = make_adapter(FMPAdapter, recorder)

        quote = await adapter.fetch_quote("aapl")

        assert quote.symbol == "AAPL"
        assert quote.price == Decimal("189.84")
        assert quote.high == Decimal("190.5")
        assert recorder.last.url.path.endswith("/quote/AAPL")

    @pytest.mark.asyncio
    async def test_empty_list(self):
        """An empty list means the symbol is unknown."""
        adapter = make_adapter(FMPAdapter, Recorder([]))

        with pytest.raises(TickerNotFoundError):
            await adapter.fetch_quote("NOPE")

    @pytest.mark.asyncio
    async def test_invalid_key(self):
        """An error object about the key is an auth failure."""
        adapter = make_adapter(FMPAdapter, Recorder({"Error Message": "Invalid API KEY."}))

        with pytest.raises(ProviderAuthError):
            await adapter.fetch_quote("AAPL")

    @pytest.mark.asyncio
    async def test_other_error_object(self):
        """Any other error object is permanent."""
        adapter = make_adapter(FMPAdapter, Recorder({"error": "Endpoint deprecated"}))

        with pytest.raises(PermanentProviderError, match="deprecated"):
            await adapter.fetch_quote("AAPL")


class TestTwelveDataAdapter:
    """Tests for Twelve Data."""

    @pytest.mark.asyncio
    async def test_maps_quote(self):
        """Numeric strings are parsed; close is the price."""
        body = {
            "symbol": "MSFT",
            "name": "Microsoft Corp",
            "open": "410.00",
            "high": "415.20",
            "low": "409.10",
            "close": "414.75",
            "volume": "20000000",
            "previous_close": "411.00",
            "change": "3.75",
            "percent_change": "0.91",
        }
        adapter = make_adapter(TwelveDataAdapter, Recorder(body))

        quote = await adapter.fetch_quote("MSFT")

        assert quote.price == Decimal("414.75")
        assert quote.previous_close == Decimal("411.00")
        assert quote.volume == 20000000

    @pytest.mark.parametrize("code,expected", [
        (429, RateLimitError),
        (401, ProviderAuthError),
        (403, ProviderAuthError),
        (400, TickerNotFoundError),
        (404, TickerNotFoundError),
        (500, ProviderUnavailableError),
        (409, PermanentProviderError),
    ])
    @pytest.mark.asyncio
    async def test_in_body_errors(self, code, expected):
        """Status codes inside the body are classified like HTTP statuses."""
        body = {"status": "error", "code": code, "message": "problem"}
        adapter = make_adapter(TwelveDataAdapter, Recorder(body))

        with pytest.raises(expected):
            await adapter.fetch_quote("MSFT")

    @pytest.mark.asyncio
    async def test_missing_symbol_field(self):
        """A success body without a symbol is a schema error."""
        adapter = make_adapter(TwelveDataAdapter, Recorder({"close": "1.0"}))

        with pytest.raises(ProviderSchemaError):
            await adapter.fetch_quote("MSFT")


# =============================================================================
# MALFORMED PAYLOADS
# =============================================================================

class TestMalformedPayloads:
    """A body of the wrong shape is a schema error, never a crash."""

    @pytest.mark.parametrize("adapter_class,identifier,body", [
        (NSEAdapter, "INFY", {"priceInfo": None}),
        (NSEAdapter, "INFY", {"priceInfo": "unavailable"}),
        (NSEAdapter, "INFY", {"info": "INFY", "priceInfo": {"lastPrice": 1500}}),
        (NSEAdapter, "INFY", {"priceInfo": {"lastPrice": 1500, "intraDayHighLow": [1, 2]}}),
        (NSEAdapter, "INFY", ["INFY"]),
        (BSEAdapter, "500325", ["500325"]),
        (BSEAdapter, "500325", "2500.10"),
        (ZerodhaAdapter, "NSE:INFY", {"status": "success", "data": ["NSE:INFY"]}),
        (ZerodhaAdapter, "NSE:INFY", {"status": "success", "data": {"NSE:INFY": 1500.5}}),
        (ZerodhaAdapter, "NSE:INFY", {"status": "success", "data": {"NSE:INFY": {"last_price": 1, "ohlc": 7}}}),
        (ZerodhaAdapter, "NSE:INFY", ["NSE:INFY"]),
        (CAMSAdapter, "119551", [NAV_BODY]),
        (KarvyAdapter, "119551", "45.67"),
        (MoneyControlAdapter, "119551", 45.67),
        (AlphaVantageAdapter, "IBM", {"Global Quote": ["IBM", "182.50"]}),
        (AlphaVantageAdapter, "IBM", ["IBM"]),
        (FMPAdapter, "AAPL", ["AAPL"]),
        (FMPAdapter, "AAPL", [None]),
        (FMPAdapter, "AAPL", "AAPL"),
        (TwelveDataAdapter, "MSFT", ["MSFT"]),
        (TwelveDataAdapter, "MSFT", "MSFT 414.75"),
    ])
    @pytest.mark.asyncio
    async def test_schema_error(self, adapter_class, identifier, body):
        adapter = make_adapter(adapter_class, Recorder(body))

        with pytest.raises(ProviderSchemaError) as exc_info:
            await adapter.fetch_quote(identifier)

        assert exc_info.value.provider == "test"
        assert not isinstance(exc_info.value, TransientProviderError)

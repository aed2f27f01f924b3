# backend/tests/routers/test_quotes_api.py
"""
API layer tests for quote lookups, provider listing and market overview.

Tests:
- GET /quotes/{investment_type}/{identifier}
- GET /providers
- GET /market/overview

Providers answer through httpx.MockTransport, so these tests also verify
how provider failures map onto HTTP status codes.
"""

import os
from collections.abc import Callable
from decimal import Decimal

import httpx
import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_NAME", "Test App")

from fastapi.testclient import TestClient

from pricesync.config import Settings
from pricesync.dependencies import get_market_overview_service, get_provider_registry
from pricesync.main import app
from pricesync.services.market_data import MarketOverviewService, ProviderRegistry

FAST = "1000/second"


class ExchangeStub:
    """Answers NSE and BSE requests; tests change the NSE behaviour."""

    def __init__(self):
        self.nse_status = 200
        self.nse_headers: dict[str, str] = {}
        self.known = {"INFY", "NIFTY 50"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "www.nseindia.com":
            if self.nse_status != 200:
                return httpx.Response(self.nse_status, headers=self.nse_headers, json={})
            symbol = request.url.params["symbol"]
            if symbol not in self.known:
                return httpx.Response(200, json={})
            return httpx.Response(200, json={
                "info": {"symbol": symbol, "companyName": "Infosys Limited"},
                "priceInfo": {"lastPrice": 1500.5, "change": 10.5, "pChange": 0.7, "previousClose": 1490},
            })
        if request.url.host == "api.bseindia.com":
            return httpx.Response(200, json={})
        return httpx.Response(404, json={})


@pytest.fixture
def stub() -> ExchangeStub:
    return ExchangeStub()


@pytest.fixture
def make_client(stub) -> Callable[..., TestClient]:
    """Build a TestClient over a registry with the given settings."""
    clients: list[TestClient] = []

    def factory(**overrides) -> TestClient:
        values = {
            "cams_api_key": "cams-key",
            "karvy_api_key": "karvy-key",
            "nse_rate_limit": FAST,
            "bse_rate_limit": FAST,
            "breaker_failure_threshold": 5,
        }
        values.update(overrides)
        settings = Settings(_env_file=None, environment="test", **values)
        registry = ProviderRegistry(
            settings,
            client=httpx.AsyncClient(transport=httpx.MockTransport(stub)),
        )
        app.dependency_overrides[get_provider_registry] = lambda: registry
        app.dependency_overrides[get_market_overview_service] = (
            lambda: MarketOverviewService(registry, ["NIFTY 50", "NIFTY BANK"])
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


# =============================================================================
# GET /quotes
# =============================================================================

class TestGetQuote:
    """Tests for GET /quotes/{investment_type}/{identifier}."""

    def test_returns_quote(self, client: TestClient):
        """Should return the quote in camelCase."""
        response = client.get("/quotes/stock/INFY")

        assert response.status_code == 200
        data = response.json()
        assert data["symbol"] == "INFY"
        assert data["name"] == "Infosys Limited"
        assert data["provider"] == "nse"
        assert Decimal(str(data["price"])) == Decimal("1500.5")
        assert "changePercent" in data
        assert "previousClose" in data

    def test_single_provider(self, client: TestClient, stub: ExchangeStub):
        """provider= restricts the lookup to one adapter."""
        stub.nse_status = 503

        response = client.get("/quotes/stock/INFY", params={"provider": "bse"})

        assert response.status_code == 404
        assert response.json()["details"]["provider"] == "bse"

    def test_unknown_symbol(self, client: TestClient):
        """Should return 404 when the only provider does not know the symbol."""
        response = client.get("/quotes/stock/NOPE")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "TickerNotFoundError"
        assert data["details"]["identifier"] == "NOPE"

    def test_all_providers_exhausted(self, make_client, stub: ExchangeStub):
        """A multi-provider route reports every attempt."""
        stub.nse_status = 503
        client = make_client(stock_providers=["nse", "bse"])

        response = client.get("/quotes/stock/INFY")

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "AllProvidersExhausted"
        assert data["details"]["transient"] is True
        assert [a["provider"] for a in data["details"]["attempts"]] == ["nse", "bse"]
        assert [a["error"] for a in data["details"]["attempts"]] == [
            "ProviderUnavailableError", "TickerNotFoundError",
        ]

    def test_provider_unavailable(self, client: TestClient, stub: ExchangeStub):
        """An upstream outage is a 503."""
        stub.nse_status = 503

        response = client.get("/quotes/stock/INFY")

        assert response.status_code == 503
        assert response.json()["error"] == "ProviderUnavailableError"

    def test_provider_rate_limited(self, client: TestClient, stub: ExchangeStub):
        """Upstream throttling is a 429 with Retry-After."""
        stub.nse_status = 429
        stub.nse_headers = {"Retry-After": "30"}

        response = client.get("/quotes/stock/INFY")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"
        assert response.json()["details"]["retry_after"] == 30

    def test_provider_auth_failure(self, client: TestClient, stub: ExchangeStub):
        """Rejected credentials are a 502."""
        stub.nse_status = 401

        response = client.get("/quotes/stock/INFY")

        assert response.status_code == 502
        assert response.json()["error"] == "ProviderAuthError"

    def test_open_breaker(self, make_client, stub: ExchangeStub):
        """Once the breaker opens the provider is skipped with Retry-After."""
        stub.nse_status = 503
        client = make_client(breaker_failure_threshold=1, breaker_recovery_seconds=60)

        assert client.get("/quotes/stock/INFY").status_code == 503
        response = client.get("/quotes/stock/INFY")

        assert response.status_code == 503
        assert response.json()["error"] == "CircuitBreakerOpen"
        assert int(response.headers["Retry-After"]) > 0

    def test_unpriced_type(self, client: TestClient):
        """Types without a price source are a 400."""
        response = client.get("/quotes/fixed-deposit/FD1")

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "investment_type"}

    def test_unknown_provider(self, client: TestClient):
        """Asking for a provider that is not enabled is a configuration error."""
        response = client.get("/quotes/stock/INFY", params={"provider": "bloomberg"})

        assert response.status_code == 500
        assert response.json()["error"] == "ConfigurationError"


# =============================================================================
# GET /providers
# =============================================================================

class TestListProviders:
    """Tests for GET /providers."""

    def test_lists_enabled_providers(self, client: TestClient):
        response = client.get("/providers")

        assert response.status_code == 200
        providers = {p["provider_id"]: p for p in response.json()}
        assert providers["nse"]["routes"] == ["stock", "etf"]
        assert providers["nse"]["breaker_state"] == "closed"
        assert providers["cams"]["requires_credentials"] is True
        assert "zerodha" not in providers

    def test_shows_open_breaker(self, make_client, stub: ExchangeStub):
        """Breaker state reflects earlier failures."""
        stub.nse_status = 503
        client = make_client(breaker_failure_threshold=1)
        client.get("/quotes/stock/INFY")

        providers = {p["provider_id"]: p for p in client.get("/providers").json()}

        assert providers["nse"]["breaker_state"] == "open"


# =============================================================================
# GET /market/overview
# =============================================================================

class TestMarketOverview:
    """Tests for GET /market/overview."""

    def test_indices_and_failures(self, client: TestClient):
        response = client.get("/market/overview")

        assert response.status_code == 200
        data = response.json()
        assert [q["symbol"] for q in data["indices"]] == ["NIFTY 50"]
        assert data["failures"] == {"NIFTY BANK": "AllProvidersExhausted"}
        assert data["last_updated"] is not None


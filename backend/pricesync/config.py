# backend/pricesync/config.py
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- <PROVIDER>_BASE_URL / <PROVIDER>_RATE_LIMIT: Per-provider endpoint and quota
- Provider credentials (ZERODHA_API_KEY, CAMS_API_KEY, ...)
- *_PROVIDERS: Ordered provider routes per investment type
- SYNC_*: Timeouts and concurrency of a sync cycle

List settings (routes, CORS origins, market indices) are JSON arrays in the
environment, e.g. MUTUAL_FUND_PROVIDERS='["karvy", "moneycontrol"]'.

Configuration is validated on application startup. Invalid configuration
will raise a ValueError with a descriptive message. Credentials are only
checked when a provider is actually built (see ProviderRegistry), so a
missing key for a provider no route uses is not an error.

Usage:
    from pricesync.config import settings

    timeout = settings.sync_item_timeout_seconds
    route = settings.route_for("mutual-fund")
"""
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pricesync.services import constants as c


# Find the .env file in project root (parent of backend/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

KNOWN_PROVIDERS: tuple[str, ...] = tuple(c.DEFAULT_PROVIDER_BASE_URLS)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - APP_NAME: Application name
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    app_name: str = "Investment Price Sync"
    debug: bool = False

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    # =========================================================================
    # PROVIDER ENDPOINTS
    # =========================================================================
    nse_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_NSE]
    bse_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_BSE]
    zerodha_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_ZERODHA]
    cams_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_CAMS]
    karvy_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_KARVY]
    moneycontrol_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_MONEYCONTROL]
    alpha_vantage_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_ALPHA_VANTAGE]
    fmp_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_FMP]
    twelve_data_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_TWELVE_DATA]
    yahoo_base_url: str = c.DEFAULT_PROVIDER_BASE_URLS[c.PROVIDER_YAHOO]
    yahoo_default_suffix: str = Field(
        default="",
        description="Suffix for bare symbols sent to Yahoo, e.g. \".NS\" when Yahoo prices NSE stocks"
    )

    # =========================================================================
    # PROVIDER CREDENTIALS
    # =========================================================================
    zerodha_api_key: str | None = Field(default=None, description="Kite Connect API key")
    zerodha_access_token: str | None = Field(default=None, description="Kite Connect access token")
    cams_api_key: str | None = Field(default=None, description="CAMS registrar API key")
    karvy_api_key: str | None = Field(default=None, description="KARVY registrar API key")
    alpha_vantage_api_key: str | None = Field(default=None, description="Alpha Vantage API key")
    fmp_api_key: str | None = Field(default=None, description="Financial Modeling Prep API key")
    twelve_data_api_key: str | None = Field(default=None, description="Twelve Data API key")

    # =========================================================================
    # PROVIDER RATE LIMITS ("<requests>/<unit>")
    # =========================================================================
    nse_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_NSE]
    bse_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_BSE]
    zerodha_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_ZERODHA]
    cams_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_CAMS]
    karvy_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_KARVY]
    moneycontrol_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_MONEYCONTROL]
    alpha_vantage_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_ALPHA_VANTAGE]
    fmp_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_FMP]
    twelve_data_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_TWELVE_DATA]
    yahoo_rate_limit: str = c.DEFAULT_PROVIDER_RATE_LIMITS[c.PROVIDER_YAHOO]

    # =========================================================================
    # ROUTES (ordered provider priority per investment type)
    # =========================================================================
    stock_providers: list[str] = Field(
        default=[c.PROVIDER_NSE],
        description="Providers for stocks, first configured priority wins"
    )
    etf_providers: list[str] = Field(default=[c.PROVIDER_NSE])
    mutual_fund_providers: list[str] = Field(
        default=[c.PROVIDER_CAMS, c.PROVIDER_KARVY, c.PROVIDER_MONEYCONTROL],
        description="NAV sources for mutual funds, tried in order"
    )
    crypto_providers: list[str] = Field(default=[c.PROVIDER_YAHOO])

    # =========================================================================
    # SYNC TIMING
    # =========================================================================
    http_timeout_seconds: float = Field(default=c.DEFAULT_HTTP_TIMEOUT_SECONDS, gt=0)
    sync_item_timeout_seconds: float = Field(default=c.DEFAULT_SYNC_ITEM_TIMEOUT_SECONDS, gt=0)
    sync_attempt_timeout_seconds: float = Field(default=c.DEFAULT_SYNC_ATTEMPT_TIMEOUT_SECONDS, gt=0)
    sync_deadline_seconds: float = Field(default=c.DEFAULT_SYNC_DEADLINE_SECONDS, gt=0)
    sync_max_concurrency: int = Field(default=c.DEFAULT_SYNC_MAX_CONCURRENCY, ge=1, le=64)

    # =========================================================================
    # CIRCUIT BREAKER
    # =========================================================================
    breaker_failure_threshold: int = Field(default=c.DEFAULT_BREAKER_FAILURE_THRESHOLD, ge=1)
    breaker_recovery_seconds: float = Field(default=c.DEFAULT_BREAKER_RECOVERY_SECONDS, ge=0)

    # =========================================================================
    # MARKET OVERVIEW
    # =========================================================================
    market_indices: list[str] = Field(default_factory=lambda: list(c.DEFAULT_MARKET_INDICES))

    # =========================================================================
    # CORS / PROXY
    # =========================================================================
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed CORS origins (JSON array in env var)"
    )
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = Field(default=["*"])
    cors_allow_headers: list[str] = Field(default=["*"])

    trust_proxy_headers: bool = Field(
        default=False,
        description="Trust X-Forwarded-For from any client (only behind a trusted load balancer)"
    )
    trusted_proxy_ips: list[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_sync_config(self) -> "Settings":
        """
        Validate cross-field sync configuration.

        Rules:
        - every route names a known provider and is non-empty
        - one provider attempt fits inside an item's timeout
        - a single item's timeout fits inside the cycle deadline
        """
        for investment_type, route in self.routes.items():
            if not route:
                raise ValueError(f"Provider route for '{investment_type}' is empty")
            unknown = [name for name in route if name not in KNOWN_PROVIDERS]
            if unknown:
                raise ValueError(
                    f"Unknown provider(s) {unknown} in route for '{investment_type}'. "
                    f"Known providers: {', '.join(KNOWN_PROVIDERS)}"
                )

        if self.sync_attempt_timeout_seconds > self.sync_item_timeout_seconds:
            raise ValueError(
                "SYNC_ATTEMPT_TIMEOUT_SECONDS "
                f"({self.sync_attempt_timeout_seconds}) cannot exceed "
                f"SYNC_ITEM_TIMEOUT_SECONDS ({self.sync_item_timeout_seconds})"
            )

        if self.sync_item_timeout_seconds > self.sync_deadline_seconds:
            raise ValueError(
                "SYNC_ITEM_TIMEOUT_SECONDS "
                f"({self.sync_item_timeout_seconds}) cannot exceed "
                f"SYNC_DEADLINE_SECONDS ({self.sync_deadline_seconds})"
            )

        return self

    @property
    def routes(self) -> dict[str, list[str]]:
        """Ordered provider routes keyed by investment type value."""
        return {
            "stock": self.stock_providers,
            "etf": self.etf_providers,
            "mutual-fund": self.mutual_fund_providers,
            "crypto": self.crypto_providers,
        }

    def route_for(self, investment_type: str) -> list[str]:
        """Provider route for an investment type ([] if the type is not priced)."""
        return list(self.routes.get(investment_type, []))

    def provider_base_url(self, provider_id: str) -> str:
        return getattr(self, f"{provider_id}_base_url")

    def provider_rate_limit(self, provider_id: str) -> str:
        return getattr(self, f"{provider_id}_rate_limit")

    def provider_credentials(self, provider_id: str) -> tuple[str | None, str | None]:
        """(api_key, access_token) for a provider; missing values are None."""
        api_key = getattr(self, f"{provider_id}_api_key", None)
        access_token = getattr(self, f"{provider_id}_access_token", None)
        return (api_key or None), (access_token or None)

    @property
    def secret_values(self) -> list[str]:
        """Every configured credential value (scrubbed from log output)."""
        values = []
        for provider_id in KNOWN_PROVIDERS:
            values.extend(v for v in self.provider_credentials(provider_id) if v)
        return values

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


# Create single instance
settings = Settings()

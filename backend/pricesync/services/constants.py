# backend/pricesync/services/constants.py
"""
Centralized constants for the price synchronization services.

This module provides a single source of truth for the tunable defaults
used across the application. Settings in pricesync.config override most
of these from the environment.

Usage:
    from pricesync.services.constants import (
        DEFAULT_SYNC_ITEM_TIMEOUT_SECONDS,
        DEFAULT_PROVIDER_RATE_LIMITS,
    )
"""

from decimal import Decimal


# =============================================================================
# PROVIDER IDENTIFIERS
# =============================================================================

PROVIDER_NSE: str = "nse"
PROVIDER_BSE: str = "bse"
PROVIDER_ZERODHA: str = "zerodha"
PROVIDER_CAMS: str = "cams"
PROVIDER_KARVY: str = "karvy"
PROVIDER_MONEYCONTROL: str = "moneycontrol"
PROVIDER_ALPHA_VANTAGE: str = "alpha_vantage"
PROVIDER_FMP: str = "fmp"
PROVIDER_TWELVE_DATA: str = "twelve_data"
PROVIDER_YAHOO: str = "yahoo"


# =============================================================================
# PROVIDER ENDPOINTS
# =============================================================================

DEFAULT_PROVIDER_BASE_URLS: dict[str, str] = {
    PROVIDER_NSE: "https://www.nseindia.com/api",
    PROVIDER_BSE: "https://api.bseindia.com",
    PROVIDER_ZERODHA: "https://api.kite.trade",
    PROVIDER_CAMS: "https://api.camsonline.com",
    PROVIDER_KARVY: "https://api.karvy.com",
    PROVIDER_MONEYCONTROL: "https://priceapi.moneycontrol.com",
    PROVIDER_ALPHA_VANTAGE: "https://www.alphavantage.co/query",
    PROVIDER_FMP: "https://financialmodelingprep.com/api/v3",
    PROVIDER_TWELVE_DATA: "https://api.twelvedata.com",
    PROVIDER_YAHOO: "https://query1.finance.yahoo.com",
}


# =============================================================================
# OUTBOUND RATE LIMITS (requests per time unit, per provider)
# =============================================================================
# Free-tier quotas. Format matches the inbound API limits below: "<n>/<unit>".

DEFAULT_PROVIDER_RATE_LIMITS: dict[str, str] = {
    PROVIDER_NSE: "2/second",
    PROVIDER_BSE: "2/second",
    PROVIDER_ZERODHA: "3/second",
    PROVIDER_CAMS: "10/minute",
    PROVIDER_KARVY: "10/minute",
    PROVIDER_MONEYCONTROL: "5/second",
    PROVIDER_ALPHA_VANTAGE: "5/minute",
    PROVIDER_FMP: "250/day",
    PROVIDER_TWELVE_DATA: "8/minute",
    PROVIDER_YAHOO: "2/second",
}


# =============================================================================
# SYNC TIMING
# =============================================================================

# Timeout for a single HTTP request to a provider
DEFAULT_HTTP_TIMEOUT_SECONDS: float = 10.0

# Budget for one investment's whole fetch (rate-limit wait + all fallbacks)
DEFAULT_SYNC_ITEM_TIMEOUT_SECONDS: float = 30.0

# Budget for one provider attempt (rate-limit wait + fetch) before falling back
DEFAULT_SYNC_ATTEMPT_TIMEOUT_SECONDS: float = 10.0

# Budget for a whole sync cycle
DEFAULT_SYNC_DEADLINE_SECONDS: float = 120.0

# Maximum number of investments fetched at the same time
DEFAULT_SYNC_MAX_CONCURRENCY: int = 8


# =============================================================================
# CIRCUIT BREAKER
# =============================================================================

DEFAULT_BREAKER_FAILURE_THRESHOLD: int = 5
DEFAULT_BREAKER_RECOVERY_SECONDS: float = 60.0


# =============================================================================
# MARKET OVERVIEW
# =============================================================================

DEFAULT_MARKET_INDICES: list[str] = ["NIFTY 50", "NIFTY BANK", "NIFTY IT", "SENSEX"]


# =============================================================================
# FINANCIAL PRECISION
# =============================================================================

PERCENT_MULTIPLIER: Decimal = Decimal("100")
DISPLAY_QUANTUM: Decimal = Decimal("0.01")


# =============================================================================
# INBOUND API RATE LIMITS (slowapi format)
# =============================================================================

# Default limit for read endpoints
RATE_LIMIT_DEFAULT: str = "100/minute"

# Sync fans out to external providers, keep it tight
RATE_LIMIT_SYNC: str = "10/minute"

# Single quote lookups also hit providers
RATE_LIMIT_QUOTES: str = "30/minute"

# Health checks (monitoring systems)
RATE_LIMIT_HEALTH: str = "300/minute"

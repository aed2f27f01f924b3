# backend/pricesync/routers/__init__.py
"""
API routers.

- sync: POST /sync (refresh prices of posted investments)
- valuation: POST /valuation (totals and allocation)
- quotes: GET /quotes/{type}/{identifier}, GET /providers
- market: GET /market/overview
"""

from pricesync.routers.market import router as market_router
from pricesync.routers.quotes import router as quotes_router
from pricesync.routers.sync import router as sync_router
from pricesync.routers.valuation import router as valuation_router

__all__ = [
    "sync_router",
    "valuation_router",
    "quotes_router",
    "market_router",
]

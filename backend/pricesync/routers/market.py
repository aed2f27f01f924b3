# backend/pricesync/routers/market.py
"""Market overview endpoint (headline indices)."""

from fastapi import APIRouter, Depends, Request

from pricesync.dependencies import get_market_overview_service
from pricesync.middleware.rate_limit import RATE_LIMIT_QUOTES, limiter
from pricesync.schemas.quotes import MarketOverviewResponse, QuoteResponse
from pricesync.services.market_data import MarketOverviewService

router = APIRouter(prefix="/market", tags=["Market"])


@router.get(
    "/overview",
    response_model=MarketOverviewResponse,
    summary="Quotes for the configured market indices",
)
@limiter.limit(RATE_LIMIT_QUOTES)
async def market_overview(
        request: Request,  # Required for rate limiting
        service: MarketOverviewService = Depends(get_market_overview_service),
) -> MarketOverviewResponse:
    """Indices that cannot be fetched are listed in `failures` instead."""
    overview = await service.get_overview()
    return MarketOverviewResponse(
        indices=[QuoteResponse.from_quote(quote) for quote in overview.indices],
        failures=overview.failures,
        last_updated=overview.last_updated,
    )

# backend/pricesync/routers/valuation.py
"""Portfolio valuation endpoint (pure computation, no provider calls)."""

from fastapi import APIRouter, Depends, Request

from pricesync.dependencies import get_valuation_engine
from pricesync.middleware.rate_limit import RATE_LIMIT_DEFAULT, limiter
from pricesync.routers.sync import to_investments
from pricesync.schemas.investments import InvestmentBatch
from pricesync.schemas.valuation import ValuationResponse
from pricesync.services.valuation import PortfolioValuationEngine

router = APIRouter(tags=["Valuation"])


@router.post(
    "/valuation",
    response_model=ValuationResponse,
    summary="Portfolio totals and allocation",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def valuate_portfolio(
        request: Request,  # Required for rate limiting
        batch: InvestmentBatch,
        engine: PortfolioValuationEngine = Depends(get_valuation_engine),
) -> ValuationResponse:
    """
    Total value, invested amount and gain/loss of the posted investments,
    plus the value held per investment type.

    Investments never priced count at their invested amount.
    """
    return ValuationResponse.from_totals(engine.valuate(to_investments(batch.investments)))

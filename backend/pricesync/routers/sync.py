# backend/pricesync/routers/sync.py
"""
Price sync endpoint.

The caller (the persistence collaborator) posts its investment records;
the response carries every record back, repriced where a provider
answered, together with per-investment failures and fresh totals.
Nothing is stored here.
"""

import logging

from fastapi import APIRouter, Depends, Request

from pricesync.dependencies import get_sync_orchestrator, get_valuation_engine
from pricesync.middleware.rate_limit import RATE_LIMIT_SYNC, limiter
from pricesync.models import Investment
from pricesync.schemas.investments import InvestmentRecord
from pricesync.schemas.sync import SyncFailureResponse, SyncRequest, SyncResponse
from pricesync.schemas.valuation import PortfolioTotalsResponse
from pricesync.services.market_data import SyncOrchestrator, SyncReport
from pricesync.services.valuation import PortfolioValuationEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Price Sync"])


def to_investments(records: list[InvestmentRecord]) -> list[Investment]:
    """
    Raises:
        ValidationError: A record cannot be turned into an Investment
    """
    return [Investment.from_record(record.model_dump(exclude_unset=True)) for record in records]


def _build_response(report: SyncReport, engine: PortfolioValuationEngine) -> SyncResponse:
    return SyncResponse(
        status=report.status,
        updated=[investment.id for investment in report.updated],
        failures=[
            SyncFailureResponse(
                investment_id=failure.investment_id,
                error_kind=failure.error_kind,
                message=failure.message,
                provider=failure.provider,
                transient=failure.transient,
                attempts=[{"provider": pid, "error_kind": kind} for pid, kind in failure.attempts],
            )
            for failure in report.failures
        ],
        skipped=report.skipped,
        investments=[investment.to_record() for investment in report.investments],
        totals=PortfolioTotalsResponse.from_totals(engine.valuate(report.investments)),
        started_at=report.started_at,
        completed_at=report.completed_at,
    )


@router.post(
    "/sync",
    response_model=SyncResponse,
    summary="Refresh prices of a batch of investments",
)
@limiter.limit(RATE_LIMIT_SYNC)
async def sync_investments(
        request: Request,  # Required for rate limiting
        sync_request: SyncRequest,
        orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
        engine: PortfolioValuationEngine = Depends(get_valuation_engine),
) -> SyncResponse:
    """
    Fetch current prices for every priced investment type and return the
    updated records.

    Per-investment failures never fail the request: they are listed in
    `failures` and those records come back unchanged. Types without a
    price source (fixed deposits, bonds, ...) are listed in `skipped`.

    Raises **400** if a record is malformed.
    """
    investments = to_investments(sync_request.investments)
    report = await orchestrator.sync(investments, deadline=sync_request.deadline_seconds)
    return _build_response(report, engine)

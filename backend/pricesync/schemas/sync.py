# backend/pricesync/schemas/sync.py
"""Pydantic schemas for POST /sync."""

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field

from pricesync.schemas.investments import InvestmentBatch
from pricesync.schemas.valuation import PortfolioTotalsResponse


class SyncRequest(InvestmentBatch):
    """Investments to refresh, optionally with a tighter cycle deadline."""

    deadline_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Cycle budget in seconds (defaults to SYNC_DEADLINE_SECONDS)"
    )


class SyncFailureResponse(BaseModel):
    investment_id: int | str
    error_kind: str
    message: str
    provider: str | None = None
    transient: bool = False
    attempts: list[dict[str, str]] = Field(
        default_factory=list,
        description="Providers tried in order with their error kinds"
    )


class SyncResponse(BaseModel):
    """Result of one sync cycle."""

    status: str = Field(description="completed, partial, or failed")
    updated: list[int | str] = Field(description="Ids of investments repriced this cycle")
    failures: list[SyncFailureResponse] = Field(default_factory=list)
    skipped: list[int | str] = Field(
        default_factory=list,
        description="Ids of investments whose type has no price source"
    )
    investments: list[dict[str, Any]] = Field(
        description="All records in request order; repriced ones carry new price fields"
    )
    totals: PortfolioTotalsResponse
    started_at: dt.datetime
    completed_at: dt.datetime | None = None

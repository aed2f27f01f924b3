# backend/pricesync/schemas/valuation.py
"""
Pydantic schemas for portfolio valuation.

Amounts are rounded to 2 decimal places here; the engine itself keeps
full precision.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from pricesync.services.constants import DISPLAY_QUANTUM
from pricesync.services.valuation import PortfolioTotals


def _display(value: Decimal) -> Decimal:
    return value.quantize(DISPLAY_QUANTUM)


class AllocationResponse(BaseModel):
    investment_type: str
    value: Decimal
    percent: Decimal = Field(description="Share of total value (0-100)")
    count: int


class PortfolioTotalsResponse(BaseModel):
    """Portfolio totals for display."""

    total_value: Decimal
    total_invested: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percent: Decimal
    unpriced_count: int = Field(
        default=0,
        description="Investments never priced (valued at 0)"
    )

    @classmethod
    def from_totals(cls, totals: PortfolioTotals) -> "PortfolioTotalsResponse":
        return cls(
            total_value=_display(totals.total_value),
            total_invested=_display(totals.total_invested),
            total_gain_loss=_display(totals.total_gain_loss),
            total_gain_loss_percent=_display(totals.total_gain_loss_percent),
            unpriced_count=totals.unpriced_count,
        )


class ValuationResponse(PortfolioTotalsResponse):
    """Totals plus allocation by investment type."""

    allocation: list[AllocationResponse] = Field(default_factory=list)

    @classmethod
    def from_totals(cls, totals: PortfolioTotals) -> "ValuationResponse":
        base = PortfolioTotalsResponse.from_totals(totals)
        return cls(
            **base.model_dump(),
            allocation=[
                AllocationResponse(
                    investment_type=s.investment_type,
                    value=_display(s.value),
                    percent=_display(s.percent),
                    count=s.count,
                )
                for s in totals.allocation
            ],
        )

# backend/pricesync/services/valuation/types.py
"""
Internal data types for portfolio valuation.

These dataclasses are NOT Pydantic schemas; the API schemas in
pricesync/schemas/valuation.py round them for display.

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for ALL financial values, full precision (no rounding here)

Type Hierarchy:
    PositionValuation  - Value and gain/loss of one investment
    AllocationSlice    - Share of the portfolio held in one investment type
    PortfolioTotals    - Portfolio-wide totals
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class PositionValuation:
    """
    Value of one investment.

    Attributes:
        investment_id: Id of the investment
        value: current_value, or 0 if never priced
        invested: invested_amount
        gain_loss: value - invested
        gain_loss_percent: gain_loss / invested * 100 (0 when invested is 0)
        priced: False when the investment has no current_value yet
    """

    investment_id: int | str
    value: Decimal
    invested: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    priced: bool = True


@dataclass(frozen=True)
class AllocationSlice:
    """Value held in one investment type and its share of the total (percent)."""

    investment_type: str
    value: Decimal
    percent: Decimal
    count: int


@dataclass(frozen=True)
class PortfolioTotals:
    """
    Portfolio-wide totals.

    Invariant: total_gain_loss == total_value - total_invested.

    Attributes:
        total_value: Sum of position values
        total_invested: Sum of invested amounts
        total_gain_loss: total_value - total_invested
        total_gain_loss_percent: total_gain_loss / total_invested * 100 (0 when nothing invested)
        positions: Per-investment breakdown, input order
        allocation: Value per investment type, largest first
    """

    total_value: Decimal
    total_invested: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percent: Decimal
    positions: tuple[PositionValuation, ...] = field(default=())
    allocation: tuple[AllocationSlice, ...] = field(default=())

    @property
    def unpriced_count(self) -> int:
        return sum(1 for p in self.positions if not p.priced)

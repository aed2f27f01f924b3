# backend/pricesync/services/valuation/calculators.py
"""
Portfolio valuation calculators.

- PositionCalculator: value and gain/loss of one investment
- AllocationCalculator: value per investment type
- PortfolioValuationEngine: portfolio totals (uses both)

Design Principles:
- Stateless (no instance state, pure functions)
- Decimal for ALL financial calculations
- Never-priced investments are valued at 0 (their whole cost is a loss)

Usage:
    engine = PortfolioValuationEngine()
    totals = engine.valuate(investments)
    print(totals.total_value, totals.total_gain_loss_percent)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from pricesync.models import Investment
from pricesync.services.constants import PERCENT_MULTIPLIER
from pricesync.services.valuation.types import (
    AllocationSlice,
    PortfolioTotals,
    PositionValuation,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, or 0 when whole is not positive."""
    if whole <= ZERO:
        return ZERO
    return part / whole * PERCENT_MULTIPLIER


# =============================================================================
# POSITION CALCULATOR
# =============================================================================

class PositionCalculator:
    """Values a single investment."""

    def calculate(self, investment: Investment) -> PositionValuation:
        value = investment.effective_value
        gain_loss = value - investment.invested_amount
        return PositionValuation(
            investment_id=investment.id,
            value=value,
            invested=investment.invested_amount,
            gain_loss=gain_loss,
            gain_loss_percent=percent_of(gain_loss, investment.invested_amount),
            priced=investment.current_value is not None,
        )


# =============================================================================
# ALLOCATION CALCULATOR
# =============================================================================

class AllocationCalculator:
    """Groups position values by investment type."""

    def calculate(
            self,
            investments: list[Investment],
            positions: list[PositionValuation],
            total_value: Decimal,
    ) -> list[AllocationSlice]:
        values: dict[str, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[str, int] = defaultdict(int)

        for investment, position in zip(investments, positions):
            values[investment.type.value] += position.value
            counts[investment.type.value] += 1

        slices = [
            AllocationSlice(
                investment_type=type_name,
                value=value,
                percent=percent_of(value, total_value),
                count=counts[type_name],
            )
            for type_name, value in values.items()
        ]
        return sorted(slices, key=lambda s: s.value, reverse=True)


# =============================================================================
# PORTFOLIO ENGINE
# =============================================================================

class PortfolioValuationEngine:
    """
    Computes portfolio totals from a list of investments.

    Pure: the same investments always produce the same totals, and nothing
    is fetched or stored.
    """

    def __init__(self) -> None:
        self._positions = PositionCalculator()
        self._allocation = AllocationCalculator()

    def valuate(self, investments: Iterable[Investment]) -> PortfolioTotals:
        """
        Args:
            investments: Investments to total (possibly empty)

        Returns:
            PortfolioTotals; all zero for an empty list
        """
        investments = list(investments)
        positions = [self._positions.calculate(inv) for inv in investments]

        total_value = sum((p.value for p in positions), ZERO)
        total_invested = sum((p.invested for p in positions), ZERO)
        total_gain_loss = total_value - total_invested

        unpriced = sum(1 for p in positions if not p.priced)
        if unpriced:
            logger.debug(f"{unpriced} investment(s) never priced, valued at 0")

        return PortfolioTotals(
            total_value=total_value,
            total_invested=total_invested,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percent=percent_of(total_gain_loss, total_invested),
            positions=tuple(positions),
            allocation=tuple(self._allocation.calculate(investments, positions, total_value)),
        )

# backend/pricesync/services/valuation/__init__.py
"""
Portfolio valuation.

Usage:
    from pricesync.services.valuation import PortfolioValuationEngine

    totals = PortfolioValuationEngine().valuate(investments)

Architecture:
    valuation/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Value objects
    └── calculators.py    # Position / allocation / portfolio calculators
"""

from pricesync.services.valuation.calculators import (
    AllocationCalculator,
    PortfolioValuationEngine,
    PositionCalculator,
    percent_of,
)
from pricesync.services.valuation.types import (
    AllocationSlice,
    PortfolioTotals,
    PositionValuation,
)

__all__ = [
    "PortfolioValuationEngine",
    "PositionCalculator",
    "AllocationCalculator",
    "percent_of",
    "PortfolioTotals",
    "PositionValuation",
    "AllocationSlice",
]

# backend/pricesync/schemas/investments.py
"""
Pydantic schemas for investment records in request bodies.

Records belong to the persistence collaborator, so unknown fields are
accepted and handed back untouched.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class InvestmentRecord(BaseModel):
    """One investment as stored by the collaborator."""

    model_config = ConfigDict(extra="allow")

    id: int | str = Field(..., description="Collaborator-assigned identifier")
    type: str = Field(..., description="stock, etf, mutual-fund, fixed-deposit, crypto, bonds, gold, other")
    symbol: str | None = Field(default=None, description="Exchange symbol")
    scheme_code: str | None = Field(default=None, description="Mutual fund scheme code")
    exchange: str | None = None
    name: str | None = None
    quantity: Decimal | None = Field(default=None, ge=0)
    invested_amount: Decimal = Field(default=Decimal("0"), ge=0)
    current_price: Decimal | None = Field(default=None, ge=0)
    current_value: Decimal | None = Field(default=None, ge=0)
    updated_at: dt.datetime | None = None


class InvestmentBatch(BaseModel):
    """A list of investment records."""

    investments: list[InvestmentRecord] = Field(default_factory=list)

# backend/pricesync/schemas/quotes.py
"""Pydantic schemas for quotes, providers and the market overview."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from pricesync.services.market_data import Quote


class QuoteResponse(BaseModel):
    """Canonical quote shape (camelCase, as the UI expects)."""

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    name: str | None = None
    price: Decimal
    change: Decimal | None = None
    change_percent: Decimal | None = Field(default=None, alias="changePercent")
    volume: int | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    open: Decimal | None = None
    previous_close: Decimal | None = Field(default=None, alias="previousClose")
    timestamp: dt.datetime
    provider: str

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        return cls(
            symbol=quote.symbol,
            name=quote.name,
            price=quote.price,
            change=quote.change,
            change_percent=quote.change_percent,
            volume=quote.volume,
            high=quote.high,
            low=quote.low,
            open=quote.open,
            previous_close=quote.previous_close,
            timestamp=quote.timestamp,
            provider=quote.provider,
        )


class ProviderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider_id: str
    base_url: str
    quota: str
    requires_credentials: bool
    routes: list[str]
    breaker_state: str
    breaker_rejected_calls: int


class MarketOverviewResponse(BaseModel):
    indices: list[QuoteResponse]
    failures: dict[str, str] = Field(
        default_factory=dict,
        description="Index symbol -> error kind for indices that could not be fetched"
    )
    last_updated: dt.datetime

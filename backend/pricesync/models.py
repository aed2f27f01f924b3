# backend/pricesync/models.py
"""
Domain models for investment records.

Investments are owned by the persistence collaborator: it hands us a list of
records and stores whatever we hand back. We only ever rewrite the price
fields (current_price, current_value, updated_at). Everything else in the
record, including fields we do not model, is carried through untouched.

Models:
    InvestmentType - Asset class of a position (decides the provider route)
    Investment     - Immutable view of one investment record
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from pricesync.services.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Fields the sync is allowed to rewrite
PRICE_FIELDS: tuple[str, ...] = ("current_price", "current_value", "updated_at")


class InvestmentType(str, enum.Enum):
    """Investment types as stored by the persistence collaborator."""

    STOCK = "stock"
    ETF = "etf"
    MUTUAL_FUND = "mutual-fund"
    FIXED_DEPOSIT = "fixed-deposit"
    CRYPTO = "crypto"
    BONDS = "bonds"
    GOLD = "gold"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | InvestmentType | None) -> InvestmentType:
        """
        Normalize a stored type string.

        Accepts hyphen, underscore and space spellings ("mutual_fund",
        "Mutual Fund") and a few common aliases. Unknown types map to OTHER,
        which has no price source.
        """
        if isinstance(value, InvestmentType):
            return value
        if not value:
            return cls.OTHER

        normalized = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        normalized = _TYPE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            logger.debug(f"Unknown investment type '{value}', treating as 'other'")
            return cls.OTHER


_TYPE_ALIASES: dict[str, str] = {
    "stocks": "stock",
    "equity": "stock",
    "mutualfund": "mutual-fund",
    "mutual-funds": "mutual-fund",
    "mf": "mutual-fund",
    "fd": "fixed-deposit",
    "bond": "bonds",
    "cryptocurrency": "crypto",
}


@dataclass(frozen=True)
class Investment:
    """
    One investment record.

    Invariant: when quantity is present, current_value == quantity * current_price
    after a successful sync. When quantity is absent (fixed deposits and the
    like), current_value is the position's absolute worth as reported.

    Attributes:
        id: Identifier assigned by the persistence collaborator
        type: Investment type (decides which providers are asked)
        invested_amount: Total amount paid for the position
        symbol: Exchange symbol (stocks, ETFs, crypto)
        scheme_code: Mutual fund scheme code (falls back to symbol)
        exchange: Exchange code, e.g. "NSE" or "BSE" (optional)
        name: Display name (optional)
        quantity: Units held, None for positions without units
        current_price: Last known price / NAV
        current_value: Last known value of the whole position
        updated_at: When the price fields were last refreshed
        source: The original record (pass-through for unmodelled fields)
        changed: Names of price fields rewritten since the record was loaded
    """

    id: int | str
    type: InvestmentType
    invested_amount: Decimal
    symbol: str | None = None
    scheme_code: str | None = None
    exchange: str | None = None
    name: str | None = None
    quantity: Decimal | None = None
    current_price: Decimal | None = None
    current_value: Decimal | None = None
    updated_at: datetime | None = None
    source: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)
    changed: frozenset[str] = field(default=frozenset(), compare=False, repr=False)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Investment:
        """
        Build an Investment from a collaborator record.

        Raises:
            ValidationError: If id is missing or a numeric field is malformed
        """
        if record.get("id") is None:
            raise ValidationError("Investment record has no id", field="id")

        scheme_code = record.get("scheme_code", record.get("schemeCode"))

        return cls(
            id=record["id"],
            type=InvestmentType.parse(record.get("type")),
            invested_amount=_to_decimal(record.get("invested_amount"), "invested_amount") or Decimal("0"),
            symbol=_clean_str(record.get("symbol")),
            scheme_code=_clean_str(scheme_code),
            exchange=_clean_str(record.get("exchange")),
            name=_clean_str(record.get("name")),
            quantity=_to_decimal(record.get("quantity"), "quantity"),
            current_price=_to_decimal(record.get("current_price"), "current_price"),
            current_value=_to_decimal(record.get("current_value"), "current_value"),
            updated_at=_to_datetime(record.get("updated_at")),
            source=dict(record),
        )

    def with_price(self, price: Decimal, as_of: datetime) -> Investment:
        """
        Return a copy repriced at `price`.

        With a quantity the value is quantity * price; without one the
        provider's figure is taken as the value of the whole position.
        """
        value = price * self.quantity if self.quantity is not None else price
        return replace(
            self,
            current_price=price,
            current_value=value,
            updated_at=as_of,
            changed=self.changed | frozenset(PRICE_FIELDS),
        )

    def to_record(self) -> dict[str, Any]:
        """
        Serialize back into the collaborator's record shape.

        Unmodified investments return their original record unchanged; repriced
        ones only overwrite the price fields.
        """
        if not self.source:
            return {
                "id": self.id,
                "type": self.type.value,
                "symbol": self.symbol,
                "scheme_code": self.scheme_code,
                "exchange": self.exchange,
                "name": self.name,
                "quantity": self.quantity,
                "invested_amount": self.invested_amount,
                "current_price": self.current_price,
                "current_value": self.current_value,
                "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            }

        record = dict(self.source)
        for name in self.changed:
            value = getattr(self, name)
            record[name] = value.isoformat() if isinstance(value, datetime) else value
        return record

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    @property
    def identifier(self) -> str | None:
        """What providers are asked for: scheme code for funds, else symbol."""
        if self.type == InvestmentType.MUTUAL_FUND:
            return self.scheme_code or self.symbol
        return self.symbol

    @property
    def effective_value(self) -> Decimal:
        """Current value, or 0 if never priced."""
        return self.current_value if self.current_value is not None else Decimal("0")

    @property
    def gain_loss(self) -> Decimal:
        return self.effective_value - self.invested_amount

    @property
    def gain_loss_percent(self) -> Decimal:
        """Gain/loss relative to invested amount (0 when nothing invested)."""
        if self.invested_amount <= 0:
            return Decimal("0")
        return self.gain_loss / self.invested_amount * Decimal("100")


# =============================================================================
# PARSING HELPERS
# =============================================================================

def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_decimal(value: Any, field_name: str) -> Decimal | None:
    """Parse a numeric record field; None and "" stay None."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got {value!r}", field=field_name)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number, got {value!r}", field=field_name)
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}", field=field_name)
    if result < 0:
        raise ValidationError(f"{field_name} cannot be negative, got {value!r}", field=field_name)
    return result


def _to_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable updated_at {value!r}")
        return None

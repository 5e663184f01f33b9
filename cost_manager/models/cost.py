"""
Core Cost Models

A cost is a single expense entry. Callers supply a CostPayload; the
storage engine turns it into a CostRecord by stamping an id and the
insertion time. Records are immutable once stored.

DESIGN DECISION: Amounts are Decimal end to end. They are stored as
decimal text and only the aggregate report total is ever rounded.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Currency(str, Enum):
    """Currencies a cost can be entered in."""
    USD = "USD"
    ILS = "ILS"
    GBP = "GBP"
    EURO = "EURO"


# Category list offered to the presentation layer. The store does not
# enforce it; any non-empty label is accepted.
DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Food",
    "Transportation",
    "Housing",
    "Utilities",
    "Health",
    "Education",
    "Entertainment",
    "Shopping",
    "Travel",
    "Other",
)


# =============================================================================
# COST MODELS
# =============================================================================

class CostPayload(BaseModel):
    """
    Caller-supplied data for a new cost.

    There is deliberately no timestamp here: the store assigns it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    sum: Decimal = Field(
        ...,
        gt=0,
        max_digits=30,
        allow_inf_nan=False,
        description="Amount as entered, in the given currency"
    )
    currency: Currency = Field(
        ...,
        description="Currency the amount was entered in"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the money was spent on"
    )


class CostRecord(BaseModel):
    """
    A stored cost.

    CRITICAL: recorded_at is assigned by the store at insert time and is
    the only date used for period filtering. It never changes.

    currency is a plain code rather than Currency so that rows written
    with a code outside the enum still load; the report builder converts
    such rows at rate 1.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(
        ...,
        ge=1,
        description="Store-assigned, monotonically increasing id"
    )
    sum: Decimal
    currency: str
    category: str
    description: str
    recorded_at: datetime = Field(
        ...,
        description="UTC insertion timestamp"
    )

    @field_validator('recorded_at')
    @classmethod
    def normalize_to_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC; aware ones are converted."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_dict(self) -> dict:
        """Plain data for the presentation layer."""
        return {
            "id": self.id,
            "sum": str(self.sum),
            "currency": self.currency,
            "category": self.category,
            "description": self.description,
            "recorded_at": self.recorded_at.isoformat(),
        }

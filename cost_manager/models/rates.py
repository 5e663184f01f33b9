"""
Exchange Rate Models

A rate table maps a currency code to its rate relative to the base
currency (USD). Converting an amount from A to B is
``amount / rate(A) * rate(B)``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Number = Union[int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Convert through str so 0.9 becomes Decimal('0.9'), not its binary expansion."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class RateTable(BaseModel):
    """
    Immutable currency → rate mapping.

    rate_for() applies the fallback policy: a currency that is absent
    (or has a zero rate) converts at 1. Whether a table is complete is a
    separate question, answered when it is fetched.
    """
    model_config = ConfigDict(frozen=True)

    rates: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Currency code to rate relative to USD"
    )
    fetched_at: Optional[datetime] = Field(
        default=None,
        description="When the table was fetched, if it came from the network"
    )

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Number],
        fetched_at: Optional[datetime] = None,
    ) -> "RateTable":
        return cls(
            rates={code: to_decimal(rate) for code, rate in mapping.items()},
            fetched_at=fetched_at,
        )

    def __contains__(self, code: object) -> bool:
        return code in self.rates

    def rate_for(self, code: str) -> Decimal:
        if code not in self or not self.rates[code]:
            return Decimal(1)
        return self.rates[code]

    def convert(self, amount: Decimal, from_code: str, to_code: str) -> Decimal:
        """Convert an amount between two currencies via the base currency."""
        if from_code == to_code:
            return amount
        return amount / self.rate_for(from_code) * self.rate_for(to_code)

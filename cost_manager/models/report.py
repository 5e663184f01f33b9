"""
Report Models

Reports are derived views. They are computed on demand from the stored
records plus a rate table, never cached and never persisted. The same
records and the same rates always produce the same report.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ReportLineItem(BaseModel):
    """One cost inside a monthly report, in its original currency."""
    model_config = ConfigDict(frozen=True)

    sum: Decimal = Field(
        ...,
        description="Original amount, never rounded"
    )
    currency: str
    category: str
    description: str
    day: int = Field(
        ...,
        ge=1,
        le=31,
        description="UTC day-of-month the cost was recorded on"
    )

    def to_dict(self) -> dict:
        return {
            "sum": str(self.sum),
            "currency": self.currency,
            "category": self.category,
            "description": self.description,
            "day": self.day,
        }


class ReportTotal(BaseModel):
    """Converted total of a report."""
    model_config = ConfigDict(frozen=True)

    currency: str
    amount: Decimal = Field(
        ...,
        description="Total in the target currency, rounded half-up to 2 places"
    )


class Report(BaseModel):
    """Costs for one calendar month (UTC) with a single converted total."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1)
    month: int = Field(..., ge=1, le=12)
    line_items: tuple[ReportLineItem, ...] = Field(default_factory=tuple)
    total: ReportTotal

    @property
    def is_empty(self) -> bool:
        return not self.line_items

    def to_dict(self) -> dict:
        """Plain data for the presentation layer."""
        return {
            "year": self.year,
            "month": self.month,
            "costs": [item.to_dict() for item in self.line_items],
            "total": {
                "currency": self.total.currency,
                "total": str(self.total.amount),
            },
        }


class CategoryBreakdown(BaseModel):
    """Per-category converted totals for one month."""
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    currency: str
    totals: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Category to converted total, in first-seen order"
    )

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "currency": self.currency,
            "categories": [
                {"label": label, "value": str(value)}
                for label, value in self.totals.items()
            ],
        }


class YearlyCategorySeries(BaseModel):
    """Twelve monthly totals per category for one year."""
    model_config = ConfigDict(frozen=True)

    year: int
    currency: str
    months: tuple[str, ...] = Field(
        default=tuple(f"{m:02d}" for m in range(1, 13)),
        description="Month labels '01'..'12'"
    )
    series: dict[str, tuple[Decimal, ...]] = Field(
        default_factory=dict,
        description="Category to its 12 monthly totals"
    )

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "currency": self.currency,
            "months": list(self.months),
            "series": [
                {"label": label, "data": [str(v) for v in values]}
                for label, values in self.series.items()
            ],
        }

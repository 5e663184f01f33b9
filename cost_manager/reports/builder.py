"""
Report Builder

DESIGN DECISION: Report building is DETERMINISTIC and pure. It takes the
stored costs and a rate table and returns a Report; the only I/O is in
build_from_storage(), which reads the costs first.

Period membership uses recorded_at in UTC. A cost recorded at
2025-09-30T23:59Z belongs to September whatever the local timezone is,
and to no other month.

Conversion goes through the base currency:

    total = round_half_up(sum(cost.sum / rate(cost.currency)) * rate(target), 2)

rate(code) falls back to 1 for a currency missing from the table. Only
the total is rounded; line items keep the amount exactly as entered.
"""

from datetime import timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable, Mapping, Union

import structlog

from cost_manager.models.cost import CostRecord
from cost_manager.models.rates import Number, RateTable
from cost_manager.models.report import (
    CategoryBreakdown,
    Report,
    ReportLineItem,
    ReportTotal,
    YearlyCategorySeries,
)
from cost_manager.services.storage import CostStorageInterface, DatabaseHandle


logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")
# Digits kept while summing and converting; the default 28 is too few for
# quantizing totals of large amounts
PRECISION = 60

Rates = Union[RateTable, Mapping[str, Number]]


def round_money(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _as_rate_table(rates: Rates) -> RateTable:
    if isinstance(rates, RateTable):
        return rates
    return RateTable.from_mapping(rates)


def _check_period(year: int, month: int) -> None:
    if isinstance(year, bool) or not isinstance(year, int) or year < 1:
        raise ValueError(f"Year must be a positive integer, got {year!r}")
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month!r}")


class ReportBuilder:
    """
    Builds monthly reports and the chart aggregations derived from them.

    GUARANTEES:
    - Only records whose UTC recorded_at falls in the period are included
    - Identical records and rates always give an identical report
    - A missing per-currency rate converts at 1, never raises
    """

    def build(
        self,
        records: Iterable[CostRecord],
        year: int,
        month: int,
        target_currency: str,
        rates: Rates,
    ) -> Report:
        """Build the report for one (year, month) in target_currency."""
        _check_period(year, month)
        table = _as_rate_table(rates)
        target = str(getattr(target_currency, "value", target_currency))

        matching = sorted(
            (r for r in records if self._in_period(r, year, month)),
            key=lambda r: (r.recorded_at, r.id),
        )

        line_items = tuple(
            ReportLineItem(
                sum=record.sum,
                currency=record.currency,
                category=record.category,
                description=record.description,
                day=record.recorded_at.astimezone(timezone.utc).day,
            )
            for record in matching
        )

        with localcontext() as ctx:
            ctx.prec = PRECISION
            base_total = sum(
                (record.sum / table.rate_for(record.currency) for record in matching),
                Decimal(0),
            )
            amount = round_money(base_total * table.rate_for(target))

        logger.debug(
            "report_built",
            year=year,
            month=month,
            currency=target,
            line_items=len(line_items),
            total=str(amount),
        )
        return Report(
            year=year,
            month=month,
            line_items=line_items,
            total=ReportTotal(currency=target, amount=amount),
        )

    async def build_from_storage(
        self,
        storage: CostStorageInterface,
        handle: DatabaseHandle,
        year: int,
        month: int,
        target_currency: str,
        rates: Rates,
    ) -> Report:
        """Read every cost from storage and build the report."""
        _check_period(year, month)
        records = await storage.fetch_all(handle)
        return self.build(records, year, month, target_currency, rates)

    def category_breakdown(self, report: Report, rates: Rates) -> CategoryBreakdown:
        """Converted totals per category for an already built report."""
        table = _as_rate_table(rates)
        target = report.total.currency

        totals: dict[str, Decimal] = {}
        with localcontext() as ctx:
            ctx.prec = PRECISION
            for item in report.line_items:
                value = table.convert(item.sum, item.currency, target)
                totals[item.category] = totals.get(item.category, Decimal(0)) + value

        return CategoryBreakdown(
            year=report.year,
            month=report.month,
            currency=target,
            totals={label: round_money(value) for label, value in totals.items()},
        )

    def yearly_series(
        self,
        records: Iterable[CostRecord],
        year: int,
        target_currency: str,
        rates: Rates,
    ) -> YearlyCategorySeries:
        """Twelve monthly category totals for one year."""
        _check_period(year, 1)
        table = _as_rate_table(rates)
        records = list(records)
        target = str(getattr(target_currency, "value", target_currency))

        monthly = [
            self.category_breakdown(self.build(records, year, month, target, table), table)
            for month in range(1, 13)
        ]

        categories: list[str] = []
        for breakdown in monthly:
            for label in breakdown.totals:
                if label not in categories:
                    categories.append(label)

        series = {
            label: tuple(
                breakdown.totals.get(label, Decimal("0.00")) for breakdown in monthly
            )
            for label in categories
        }
        return YearlyCategorySeries(year=year, currency=target, series=series)

    @staticmethod
    def _in_period(record: CostRecord, year: int, month: int) -> bool:
        recorded = record.recorded_at.astimezone(timezone.utc)
        return recorded.year == year and recorded.month == month

"""
Main Orchestrator for Cost Manager

Ties storage, the exchange rate client and the report builder together
into the operations the presentation layer calls:

1. Add a cost (payload → stamped record)
2. Monthly report (fetch rates → read costs → build)
3. Chart data (category breakdown, yearly series)
4. Reset (clear every cost)

The orchestrator enforces one ordering rule. Rates are fetched and
validated BEFORE any costs are read, so a missing or invalid rate source
fails the call without producing a report from partial data.
"""

from typing import Mapping, Optional, Union

import structlog

from cost_manager.config import get_settings
from cost_manager.logging_config import configure_logging
from cost_manager.models.cost import CostPayload, CostRecord
from cost_manager.models.rates import RateTable
from cost_manager.models.report import CategoryBreakdown, Report, YearlyCategorySeries
from cost_manager.reports import ReportBuilder
from cost_manager.services.preferences import PreferencesStore
from cost_manager.services.rates import ExchangeRateClient
from cost_manager.services.storage import (
    CostStorageInterface,
    DatabaseHandle,
    StorageUnavailable,
    get_cost_storage,
)


logger = structlog.get_logger(__name__)


class CostManager:
    """
    One open cost database plus everything needed to report on it.

    Usage:
        async with create_cost_manager() as manager:
            await manager.add_cost({...})
            report = await manager.monthly_report(2025, 9, "EURO")
    """

    def __init__(
        self,
        storage: CostStorageInterface,
        rate_client: ExchangeRateClient,
        builder: Optional[ReportBuilder] = None,
        database_name: Optional[str] = None,
        database_version: Optional[int] = None,
    ):
        storage_settings = get_settings().storage
        self._storage = storage
        self._rate_client = rate_client
        self._builder = builder or ReportBuilder()
        self._database_name = database_name or storage_settings.name
        self._database_version = database_version or storage_settings.version
        self._handle: Optional[DatabaseHandle] = None

    @property
    def handle(self) -> DatabaseHandle:
        if self._handle is None or self._handle.closed:
            raise StorageUnavailable("CostManager is not open")
        return self._handle

    async def open(self) -> "CostManager":
        if self._handle is None or self._handle.closed:
            self._handle = await self._storage.connect(
                self._database_name, self._database_version
            )
        return self

    async def close(self) -> None:
        if self._handle is not None:
            await self._handle.close()
            self._handle = None

    async def __aenter__(self) -> "CostManager":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def add_cost(self, payload: Union[CostPayload, Mapping]) -> CostRecord:
        """Store a new cost; the store assigns its id and timestamp."""
        return await self._storage.insert(self.handle, payload)

    async def list_costs(self) -> list[CostRecord]:
        return await self._storage.fetch_all(self.handle)

    async def monthly_report(
        self,
        year: int,
        month: int,
        currency: str,
        rates_url: Optional[str] = None,
    ) -> Report:
        """
        Report for one month in the given currency.

        Raises:
            NoRateSource / RateFetchFailed / InvalidRateData: before any
                costs are read
            ReadFailed: If costs cannot be read
        """
        rates = await self._rate_client.fetch_rates(rates_url)
        return await self._builder.build_from_storage(
            self._storage, self.handle, year, month, currency, rates
        )

    async def monthly_breakdown(
        self,
        year: int,
        month: int,
        currency: str,
        rates_url: Optional[str] = None,
    ) -> CategoryBreakdown:
        """Per-category totals for one month (pie chart data)."""
        rates = await self._rate_client.fetch_rates(rates_url)
        report = await self._builder.build_from_storage(
            self._storage, self.handle, year, month, currency, rates
        )
        return self._builder.category_breakdown(report, rates)

    async def yearly_series(
        self,
        year: int,
        currency: str,
        rates_url: Optional[str] = None,
    ) -> YearlyCategorySeries:
        """Monthly category totals across one year (stacked bar data)."""
        rates: RateTable = await self._rate_client.fetch_rates(rates_url)
        records = await self._storage.fetch_all(self.handle)
        return self._builder.yearly_series(records, year, currency, rates)

    async def reset(self) -> None:
        """Delete every stored cost."""
        await self._storage.clear(self.handle)
        logger.info("costs_reset", database=self._database_name)


def create_cost_manager(
    storage: Optional[CostStorageInterface] = None,
    preferences: Optional[PreferencesStore] = None,
) -> CostManager:
    """
    Factory wiring a CostManager from settings.

    The returned manager is not open yet; use ``async with`` or open().
    """
    configure_logging()
    preferences = preferences or PreferencesStore()
    return CostManager(
        storage=storage or get_cost_storage(),
        rate_client=ExchangeRateClient(preferences=preferences),
    )

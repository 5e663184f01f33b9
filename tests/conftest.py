"""Shared fixtures for Cost Manager tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cost_manager.models.cost import CostRecord
from cost_manager.services.storage import SQLiteCostStorage


class SteppingClock:
    """Clock returning queued timestamps, then repeating the last one."""

    def __init__(self, *moments: datetime):
        self._moments = list(moments)
        self._last = moments[-1] if moments else datetime(2025, 9, 12, tzinfo=timezone.utc)

    def push(self, moment: datetime) -> None:
        self._moments.append(moment)

    def __call__(self) -> datetime:
        if self._moments:
            self._last = self._moments.pop(0)
        return self._last


@pytest.fixture
def storage(tmp_path) -> SQLiteCostStorage:
    return SQLiteCostStorage(tmp_path / "data")


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def clocked_storage(tmp_path, clock) -> SQLiteCostStorage:
    return SQLiteCostStorage(tmp_path / "data", clock=clock)


def make_record(
    id: int,
    sum: str,
    currency: str,
    recorded_at: datetime,
    category: str = "Food",
    description: str = "lunch",
) -> CostRecord:
    return CostRecord(
        id=id,
        sum=Decimal(sum),
        currency=currency,
        category=category,
        description=description,
        recorded_at=recorded_at,
    )


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)

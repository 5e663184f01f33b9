"""
Data Models Package

Pydantic models for costs, rate tables and reports. All data flowing
through the system conforms to these schemas.
"""

from cost_manager.models.cost import (
    DEFAULT_CATEGORIES,
    CostPayload,
    CostRecord,
    Currency,
)
from cost_manager.models.rates import (
    RateTable,
)
from cost_manager.models.report import (
    CategoryBreakdown,
    Report,
    ReportLineItem,
    ReportTotal,
    YearlyCategorySeries,
)

__all__ = [
    # Cost models
    "DEFAULT_CATEGORIES",
    "CostPayload",
    "CostRecord",
    "Currency",
    # Rate models
    "RateTable",
    # Report models
    "CategoryBreakdown",
    "Report",
    "ReportLineItem",
    "ReportTotal",
    "YearlyCategorySeries",
]

"""Services package."""

from cost_manager.services.preferences import (
    Preferences,
    PreferencesError,
    PreferencesStore,
)
from cost_manager.services.rates import (
    ExchangeRateClient,
    InvalidRateData,
    NoRateSource,
    RateFetchFailed,
    RateSourceError,
    validate_rate_table,
)
from cost_manager.services.storage import (
    Blocked,
    CostStorageInterface,
    DatabaseHandle,
    ReadFailed,
    SQLiteCostStorage,
    StorageError,
    StorageUnavailable,
    WriteFailed,
    get_cost_storage,
)

__all__ = [
    # Preferences
    "Preferences",
    "PreferencesError",
    "PreferencesStore",
    # Exchange rates
    "ExchangeRateClient",
    "InvalidRateData",
    "NoRateSource",
    "RateFetchFailed",
    "RateSourceError",
    "validate_rate_table",
    # Storage
    "Blocked",
    "CostStorageInterface",
    "DatabaseHandle",
    "ReadFailed",
    "SQLiteCostStorage",
    "StorageError",
    "StorageUnavailable",
    "WriteFailed",
    "get_cost_storage",
]

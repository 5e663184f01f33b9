"""
Storage Services Package

Provides the abstract cost storage interface and its SQLite
implementation.
"""

from cost_manager.services.storage.interface import (
    COSTS_COLLECTION,
    Blocked,
    CostStorageInterface,
    DatabaseHandle,
    ReadFailed,
    StorageError,
    StorageUnavailable,
    WriteFailed,
)
from cost_manager.services.storage.sqlite_storage import (
    SQLiteCostStorage,
    SQLiteDatabaseHandle,
    get_cost_storage,
)

__all__ = [
    # Interfaces
    "COSTS_COLLECTION",
    "CostStorageInterface",
    "DatabaseHandle",
    # Exceptions
    "Blocked",
    "ReadFailed",
    "StorageError",
    "StorageUnavailable",
    "WriteFailed",
    # SQLite implementation
    "SQLiteCostStorage",
    "SQLiteDatabaseHandle",
    "get_cost_storage",
]

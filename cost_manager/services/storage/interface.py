"""
Abstract Storage Interface

DESIGN DECISION: Storage is defined as an abstract interface so the
engine behind it (SQLite today) can be swapped, or replaced with an
in-memory fake in tests, without touching the report logic.

The interface is intentionally small. Costs are append-only: there is
insert, bulk read and bulk clear, plus connect/destroy for the database
itself. There is no update and no per-record delete.

Every operation is a coroutine. Handles are explicit: connect() returns
one and it is passed to every later call. There is no implicit
"current database".
"""

from abc import ABC, abstractmethod
from typing import Mapping, Union

from cost_manager.exceptions import CostManagerError
from cost_manager.models.cost import CostPayload, CostRecord


COSTS_COLLECTION = "costs"


class DatabaseHandle(ABC):
    """
    A live connection to one named, versioned database.

    Handles must be closed before the database can be destroyed.
    """

    name: str
    version: int

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once close() has been called."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the handle. Calling it twice is harmless."""
        pass

    async def __aenter__(self) -> "DatabaseHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class CostStorageInterface(ABC):
    """
    Abstract interface for cost storage operations.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def connect(self, name: str, version: int) -> DatabaseHandle:
        """
        Open (creating or upgrading if needed) a named database.

        If the database is absent, or persisted at a lower version, the
        costs collection and its recorded_at index are created first.
        Connecting repeatedly never duplicates or resets the collection.

        Raises:
            StorageUnavailable: If the engine cannot be opened
        """
        pass

    @abstractmethod
    async def insert(
        self,
        handle: DatabaseHandle,
        payload: Union[CostPayload, Mapping],
    ) -> CostRecord:
        """
        Persist a new cost in a single write transaction.

        The store assigns id and recorded_at.

        Returns:
            The stored record

        Raises:
            WriteFailed: If the transaction aborts (store left unchanged)
        """
        pass

    @abstractmethod
    async def fetch_all(self, handle: DatabaseHandle) -> list[CostRecord]:
        """
        Return every stored cost, in no particular order.

        Raises:
            ReadFailed: On I/O error
        """
        pass

    @abstractmethod
    async def clear(self, handle: DatabaseHandle) -> None:
        """
        Delete every cost. Returns once the deletion is committed.

        Raises:
            WriteFailed: If the transaction aborts
        """
        pass

    @abstractmethod
    async def destroy(self, name: str) -> None:
        """
        Delete the whole named database.

        Raises:
            Blocked: If any handle to the database is still open
        """
        pass


class StorageError(CostManagerError):
    """Base exception for storage operations."""
    pass


class StorageUnavailable(StorageError):
    """The storage engine could not be opened."""
    pass


class WriteFailed(StorageError):
    """A write transaction aborted; nothing was committed."""
    pass


class ReadFailed(StorageError):
    """Stored costs could not be read."""
    pass


class Blocked(StorageError):
    """Destroy was prevented by handles that are still open."""

    def __init__(self, name: str, open_handles: int):
        self.name = name
        self.open_handles = open_handles
        super().__init__(
            f"Cannot destroy database '{name}': "
            f"{open_handles} connection(s) still open"
        )

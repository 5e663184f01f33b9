"""
SQLite Storage Implementation

Each logical database is one SQLite file, ``<data_dir>/<name>.sqlite3``.
The schema version lives in ``PRAGMA user_version``; connect() runs the
create step whenever the persisted version is lower than the requested
one. The create step only ever adds what is missing, so it is safe to
run any number of times.

Transactions are explicit (``BEGIN IMMEDIATE`` ... ``COMMIT``) and every
public operation is exactly one of them. Coroutines here never await
in the middle of a transaction, so operations issued through one
handle are applied in the order they are awaited.

The coroutines call sqlite3 directly and do not yield to the event loop
while a statement runs. Local statements are short, so callers needing
strict non-blocking behaviour can run them through asyncio.to_thread().

Open handles are tracked per resolved file path in a registry shared by
every SQLiteCostStorage in the process, so destroy() is blocked by a
handle opened through any instance.
"""

import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterator, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from cost_manager.config import get_settings
from cost_manager.models.cost import CostPayload, CostRecord
from cost_manager.services.storage.interface import (
    COSTS_COLLECTION,
    Blocked,
    CostStorageInterface,
    DatabaseHandle,
    ReadFailed,
    StorageUnavailable,
    WriteFailed,
)


logger = structlog.get_logger(__name__)

DB_SUFFIX = ".sqlite3"
# SQLite side files that belong to a database and go with it on destroy
SIDE_FILE_SUFFIXES = ("-journal", "-wal", "-shm")

_VALID_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

_OPEN_HANDLES: dict[Path, set["SQLiteDatabaseHandle"]] = {}

CREATE_COSTS_TABLE = f"""
CREATE TABLE IF NOT EXISTS {COSTS_COLLECTION} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sum TEXT NOT NULL,
    currency TEXT NOT NULL,
    category TEXT NOT NULL,
    description TEXT NOT NULL,
    recorded_at TEXT NOT NULL
)
"""

CREATE_RECORDED_AT_INDEX = f"""
CREATE INDEX IF NOT EXISTS idx_{COSTS_COLLECTION}_recorded_at
ON {COSTS_COLLECTION} (recorded_at)
"""

INSERT_COST = f"""
INSERT INTO {COSTS_COLLECTION} (sum, currency, category, description, recorded_at)
VALUES (?, ?, ?, ?, ?)
"""

SELECT_ALL_COSTS = f"""
SELECT id, sum, currency, category, description, recorded_at
FROM {COSTS_COLLECTION}
ORDER BY id
"""

DELETE_ALL_COSTS = f"DELETE FROM {COSTS_COLLECTION}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive clock values are UTC, matching CostRecord
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    # Fixed width so lexical order on the index matches time order
    return _as_utc(value).isoformat(timespec="microseconds")


def _registry_key(path: Path) -> Path:
    return path.resolve()


@contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block as one transaction; roll back on any failure."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


class SQLiteDatabaseHandle(DatabaseHandle):
    """Handle wrapping one open sqlite3 connection."""

    def __init__(
        self,
        storage: "SQLiteCostStorage",
        name: str,
        version: int,
        path: Path,
        connection: sqlite3.Connection,
    ):
        self.name = name
        self.version = version
        self.path = path
        self.registry_key = _registry_key(path)
        self._storage = storage
        self._connection: Optional[sqlite3.Connection] = connection

    @property
    def closed(self) -> bool:
        return self._connection is None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageUnavailable(f"Handle to database '{self.name}' is closed")
        return self._connection

    async def close(self) -> None:
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.close()
        finally:
            self._storage._release(self)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<SQLiteDatabaseHandle {self.name} v{self.version} {state}>"


class SQLiteCostStorage(CostStorageInterface):
    """
    SQLite implementation of cost storage.

    destroy() refuses to run while any handle to the same file is open,
    whichever instance opened it. get_cost_storage() returns the shared
    instance for the configured data directory.
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            data_dir: Directory holding one file per database name
            clock: Source of recorded_at timestamps (must return UTC)
        """
        self._data_dir = Path(data_dir).expanduser()
        self._clock = clock

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, name: str) -> Path:
        """Database file for a logical name."""
        if not isinstance(name, str) or not _VALID_NAME.match(name):
            raise StorageUnavailable(f"Invalid database name: {name!r}")
        return self._data_dir / f"{name}{DB_SUFFIX}"

    def open_handle_count(self, name: str) -> int:
        return len(_OPEN_HANDLES.get(_registry_key(self.path_for(name)), ()))

    def _release(self, handle: SQLiteDatabaseHandle) -> None:
        key = handle.registry_key
        handles = _OPEN_HANDLES.get(key)
        if handles is None:
            return
        handles.discard(handle)
        if not handles:
            del _OPEN_HANDLES[key]

    def _live(self, handle: DatabaseHandle) -> sqlite3.Connection:
        if not isinstance(handle, SQLiteDatabaseHandle) or handle._storage is not self:
            raise StorageUnavailable("Handle was not opened by this storage")
        return handle.connection

    # -------------------------------------------------------------------------
    # Database lifecycle
    # -------------------------------------------------------------------------

    async def connect(self, name: str, version: int = 1) -> SQLiteDatabaseHandle:
        """Open a database, running the create step if it is absent or older."""
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise StorageUnavailable(f"Database version must be a positive integer, got {version!r}")
        path = self.path_for(name)

        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(str(path), isolation_level=None)
        except (sqlite3.Error, OSError) as e:
            logger.error("database_open_failed", name=name, path=str(path), error=str(e))
            raise StorageUnavailable(f"Cannot open database '{name}': {e}") from e

        try:
            self._upgrade(connection, name, version)
        except StorageUnavailable:
            connection.close()
            raise
        except sqlite3.Error as e:
            connection.close()
            logger.error("database_upgrade_failed", name=name, version=version, error=str(e))
            raise StorageUnavailable(f"Cannot prepare database '{name}': {e}") from e

        handle = SQLiteDatabaseHandle(self, name, version, path, connection)
        _OPEN_HANDLES.setdefault(handle.registry_key, set()).add(handle)
        logger.debug("database_connected", name=name, version=version)
        return handle

    def _upgrade(self, connection: sqlite3.Connection, name: str, version: int) -> None:
        with _transaction(connection):
            current = connection.execute("PRAGMA user_version").fetchone()[0]
            if current > version:
                raise StorageUnavailable(
                    f"Database '{name}' is at version {current}, "
                    f"cannot open it at lower version {version}"
                )
            if current == version:
                return
            connection.execute(CREATE_COSTS_TABLE)
            connection.execute(CREATE_RECORDED_AT_INDEX)
            # PRAGMA does not accept bound parameters; version is a validated int
            connection.execute(f"PRAGMA user_version = {int(version)}")
        logger.info("database_upgraded", name=name, from_version=current, to_version=version)

    async def destroy(self, name: str) -> None:
        """Delete the database file, refusing while any handle is open."""
        path = self.path_for(name)
        open_count = len(_OPEN_HANDLES.get(_registry_key(path), ()))
        if open_count:
            logger.warning("destroy_blocked", name=name, open_handles=open_count)
            raise Blocked(name, open_count)

        try:
            for candidate in [path, *(Path(f"{path}{s}") for s in SIDE_FILE_SUFFIXES)]:
                candidate.unlink(missing_ok=True)
        except OSError as e:
            logger.error("destroy_failed", name=name, error=str(e))
            raise WriteFailed(f"Failed to destroy database '{name}': {e}") from e
        logger.info("database_destroyed", name=name)

    # -------------------------------------------------------------------------
    # Costs
    # -------------------------------------------------------------------------

    async def insert(
        self,
        handle: DatabaseHandle,
        payload: Union[CostPayload, Mapping],
    ) -> CostRecord:
        """Stamp and store one cost."""
        connection = self._live(handle)
        if not isinstance(payload, CostPayload):
            try:
                payload = CostPayload.model_validate(payload)
            except ValidationError as e:
                raise WriteFailed(f"Invalid cost payload: {e}") from e

        recorded_at = _as_utc(self._clock())
        try:
            with _transaction(connection):
                cursor = connection.execute(
                    INSERT_COST,
                    (
                        str(payload.sum),
                        payload.currency.value,
                        payload.category,
                        payload.description,
                        _format_timestamp(recorded_at),
                    ),
                )
                cost_id = cursor.lastrowid
        except sqlite3.Error as e:
            logger.error("cost_insert_failed", database=handle.name, error=str(e))
            raise WriteFailed(f"Failed to insert cost: {e}") from e

        record = CostRecord(
            id=cost_id,
            sum=payload.sum,
            currency=payload.currency.value,
            category=payload.category,
            description=payload.description,
            recorded_at=recorded_at,
        )
        logger.info(
            "cost_inserted",
            database=handle.name,
            cost_id=record.id,
            currency=record.currency,
            category=record.category,
        )
        return record

    async def fetch_all(self, handle: DatabaseHandle) -> list[CostRecord]:
        """Read every stored cost."""
        connection = self._live(handle)
        try:
            rows = connection.execute(SELECT_ALL_COSTS).fetchall()
        except sqlite3.Error as e:
            logger.error("cost_fetch_failed", database=handle.name, error=str(e))
            raise ReadFailed(f"Failed to read costs: {e}") from e

        try:
            return [self._row_to_record(row) for row in rows]
        except (InvalidOperation, ValueError, ValidationError) as e:
            logger.error("cost_row_malformed", database=handle.name, error=str(e))
            raise ReadFailed(f"Stored cost is malformed: {e}") from e

    async def clear(self, handle: DatabaseHandle) -> None:
        """Delete every cost in one committed transaction."""
        connection = self._live(handle)
        try:
            with _transaction(connection):
                deleted = connection.execute(DELETE_ALL_COSTS).rowcount
        except sqlite3.Error as e:
            logger.error("cost_clear_failed", database=handle.name, error=str(e))
            raise WriteFailed(f"Failed to clear costs: {e}") from e
        logger.info("costs_cleared", database=handle.name, deleted=deleted)

    @staticmethod
    def _row_to_record(row: tuple) -> CostRecord:
        return CostRecord(
            id=row[0],
            sum=Decimal(row[1]),
            currency=row[2],
            category=row[3],
            description=row[4],
            recorded_at=datetime.fromisoformat(row[5]),
        )


@lru_cache()
def get_cost_storage() -> SQLiteCostStorage:
    """
    Process-wide storage instance (cached).

    Everything in the process that opens the configured databases should
    go through this instance so open handles are tracked in one place.
    """
    return SQLiteCostStorage(get_settings().storage.data_dir)

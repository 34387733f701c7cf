"""
In-memory restaurant table store.

In production, this would be the `restaurant_tables` relation of the
restaurant database. Every write is atomic per row and gated by the
table status transition rules; reads hand out copies so callers can keep
snapshots without seeing later writes.
"""

import logging
import threading
from datetime import datetime
from typing import Optional, Protocol

from table_assistant.schemas.table_schema import Table, TableStatus, TableType

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[TableStatus, frozenset[TableStatus]] = {
    TableStatus.AVAILABLE: frozenset({TableStatus.OCCUPIED, TableStatus.RESERVED}),
    TableStatus.OCCUPIED: frozenset({TableStatus.AVAILABLE}),
    TableStatus.RESERVED: frozenset({TableStatus.AVAILABLE, TableStatus.OCCUPIED}),
}

DEFAULT_TABLES: list[Table] = [
    Table(id=1, table_number=1, capacity=2),
    Table(id=2, table_number=2, capacity=2),
    Table(id=3, table_number=3, capacity=4),
    Table(id=4, table_number=4, capacity=4),
    Table(id=5, table_number=5, capacity=6),
    Table(id=6, table_number=6, capacity=8, type=TableType.VIP),
    Table(id=7, table_number=7, capacity=4, type=TableType.VIP),
    Table(id=8, table_number=8, capacity=10),
]


class StoreError(Exception):
    """Raised when the backing store cannot serve a request."""


class TableNotFoundError(StoreError):
    """Raised when a write targets a table id that does not exist."""


class InvalidTableTransitionError(Exception):
    """Raised when a status change is not allowed from the current status."""


class TableStore(Protocol):
    """What the booking engine needs from table persistence."""

    def find_available(
        self, capacity: int, table_type: Optional[TableType] = None
    ) -> list[Table]: ...

    def get(self, table_id: int) -> Optional[Table]: ...

    def list_tables(self) -> list[Table]: ...

    def reservations_for_table(self, table_id: int) -> list[Table]: ...

    def reservations_for_customer(self, customer_id: int) -> list[Table]: ...

    def set_reserved(
        self, table_id: int, customer_id: int, start: datetime, duration_minutes: int
    ) -> Table: ...

    def set_occupied(
        self, table_id: int, customer_id: int, occupied_at: datetime, duration_minutes: int
    ) -> Table: ...

    def set_available(self, table_id: int) -> Table: ...


class InMemoryTableStore:
    """Thread-safe dict-backed TableStore."""

    def __init__(self, tables: Optional[list[Table]] = None) -> None:
        self._lock = threading.Lock()
        self._tables: dict[int, Table] = {}
        for table in DEFAULT_TABLES if tables is None else tables:
            self.add_table(table)

    def add_table(self, table: Table) -> None:
        with self._lock:
            self._tables[table.id] = table.model_copy(deep=True)

    def get(self, table_id: int) -> Optional[Table]:
        with self._lock:
            table = self._tables.get(table_id)
            return table.model_copy(deep=True) if table else None

    def list_tables(self) -> list[Table]:
        with self._lock:
            return [
                t.model_copy(deep=True)
                for t in sorted(self._tables.values(), key=lambda t: t.table_number)
            ]

    def find_available(
        self, capacity: int, table_type: Optional[TableType] = None
    ) -> list[Table]:
        """Enabled, Available tables seating at least `capacity`, smallest first."""
        with self._lock:
            matches = [
                t
                for t in self._tables.values()
                if t.status == TableStatus.AVAILABLE
                and t.is_enabled
                and t.capacity >= capacity
                and (table_type is None or t.type == table_type)
            ]
            matches.sort(key=lambda t: (t.capacity, t.table_number))
            return [t.model_copy(deep=True) for t in matches]

    def reservations_for_table(self, table_id: int) -> list[Table]:
        with self._lock:
            return [
                t.model_copy(deep=True)
                for t in self._tables.values()
                if t.id == table_id
                and t.status == TableStatus.RESERVED
                and t.reservation_time is not None
            ]

    def reservations_for_customer(self, customer_id: int) -> list[Table]:
        with self._lock:
            reserved = [
                t
                for t in self._tables.values()
                if t.current_customer_id == customer_id
                and t.status == TableStatus.RESERVED
                and t.reservation_time is not None
            ]
            reserved.sort(key=lambda t: t.reservation_time)
            return [t.model_copy(deep=True) for t in reserved]

    def set_reserved(
        self, table_id: int, customer_id: int, start: datetime, duration_minutes: int
    ) -> Table:
        with self._lock:
            table = self._require(table_id)
            self._check_transition(table, TableStatus.RESERVED)
            table.status = TableStatus.RESERVED
            table.current_customer_id = customer_id
            table.reservation_time = start
            table.reservation_duration = duration_minutes
            table.occupied_at = None
            logger.info(
                "Table #%d reserved for customer %d at %s (%d min)",
                table.table_number, customer_id, start.isoformat(), duration_minutes,
            )
            return table.model_copy(deep=True)

    def set_occupied(
        self, table_id: int, customer_id: int, occupied_at: datetime, duration_minutes: int
    ) -> Table:
        with self._lock:
            table = self._require(table_id)
            self._check_transition(table, TableStatus.OCCUPIED)
            table.status = TableStatus.OCCUPIED
            table.current_customer_id = customer_id
            table.reservation_time = None
            table.reservation_duration = duration_minutes
            table.occupied_at = occupied_at
            logger.info(
                "Table #%d occupied by customer %d (%d min)",
                table.table_number, customer_id, duration_minutes,
            )
            return table.model_copy(deep=True)

    def set_available(self, table_id: int) -> Table:
        with self._lock:
            table = self._require(table_id)
            self._check_transition(table, TableStatus.AVAILABLE)
            table.status = TableStatus.AVAILABLE
            table.current_customer_id = None
            table.reservation_time = None
            table.reservation_duration = None
            table.occupied_at = None
            logger.info("Table #%d is available", table.table_number)
            return table.model_copy(deep=True)

    def _require(self, table_id: int) -> Table:
        table = self._tables.get(table_id)
        if table is None:
            raise TableNotFoundError(f"Table {table_id} not found")
        return table

    @staticmethod
    def _check_transition(table: Table, new_status: TableStatus) -> None:
        if new_status == table.status == TableStatus.AVAILABLE:
            return
        if new_status not in VALID_TRANSITIONS[table.status]:
            raise InvalidTableTransitionError(
                f"Invalid status transition from {table.status.value} to {new_status.value}"
            )

    def reset(self) -> None:
        """Restore the default floor plan. Used by test fixtures for isolation."""
        with self._lock:
            self._tables = {t.id: t.model_copy(deep=True) for t in DEFAULT_TABLES}

"""
Reservation admission, conflict detection, and table lifecycle.

Every write path that changes who holds a table goes through
ReservationService so the history trail and the vacate scheduler stay in
step with the table store:

    Available --create_reservation--> Reserved --seat_reservation--> Occupied
        ^                                 |                              |
        +-------- cancel_reservation -----+------- vacate_table ---------+

Rejections are returned as results with a specific message; nothing is
written when a check fails. Store failures propagate to the caller.
"""

import itertools
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional, TypedDict

from table_assistant.config import DiningConfig, settings
from table_assistant.scheduling.notification_scheduler import VacateNotificationScheduler
from table_assistant.schemas.customer_schema import Role
from table_assistant.schemas.reservation_schema import ReservationRecord, ReservationStatus
from table_assistant.schemas.table_schema import Table, TableStatus
from table_assistant.tools.customer import UserDirectory
from table_assistant.tools.settings_store import SettingsStore
from table_assistant.tools.tables import TableStore

logger = logging.getLogger(__name__)


class ReservationResult(TypedDict, total=False):
    """Result from any ReservationService write."""

    success: bool
    message: str
    table: Table
    reservation: ReservationRecord
    expected_vacate_time: datetime


def windows_overlap(
    new_start: datetime, new_end: datetime, existing_start: datetime, existing_end: datetime
) -> bool:
    """Half-open interval overlap: touching endpoints do not conflict."""
    return new_start < existing_end and new_end > existing_start


class ReservationConflictResolver:
    """Checks a proposed time window against a table's and a customer's bookings."""

    def __init__(self, table_store: TableStore, settings_store: SettingsStore) -> None:
        self._tables = table_store
        self._settings = settings_store

    def find_conflict(
        self, table_id: int, customer_id: int, start: datetime, duration_minutes: int
    ) -> Optional[str]:
        """Return the reason the window conflicts, or None when it is free."""
        end = start + timedelta(minutes=duration_minutes)
        default_duration = self._settings.get_int("default_reservation_duration", 60)

        for existing in self._tables.reservations_for_table(table_id):
            if self._collides(existing, start, end, default_duration):
                return "This table has a conflicting reservation at that time"

        for existing in self._tables.reservations_for_customer(customer_id):
            if self._collides(existing, start, end, default_duration):
                return "You already have a reservation at this time"

        return None

    def has_conflict(
        self, table_id: int, customer_id: int, start: datetime, duration_minutes: int
    ) -> bool:
        return self.find_conflict(table_id, customer_id, start, duration_minutes) is not None

    @staticmethod
    def _collides(existing: Table, start: datetime, end: datetime, default_duration: int) -> bool:
        existing_start = existing.reservation_time
        existing_end = existing_start + timedelta(
            minutes=existing.reservation_duration or default_duration
        )
        return windows_overlap(start, end, existing_start, existing_end)


class ReservationService:
    """Reservation writes with admission checks, history, and vacate alerts."""

    def __init__(
        self,
        table_store: TableStore,
        settings_store: SettingsStore,
        scheduler: VacateNotificationScheduler,
        users: UserDirectory,
        clock: Callable[[], datetime] = datetime.now,
        config: Optional[DiningConfig] = None,
    ) -> None:
        self._tables = table_store
        self._settings = settings_store
        self._scheduler = scheduler
        self._users = users
        self._clock = clock
        self._config = config or settings.dining
        self.conflicts = ReservationConflictResolver(table_store, settings_store)
        self._history: list[ReservationRecord] = []
        self._history_ids = itertools.count(1)
        self._history_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Admission
    # ------------------------------------------------------------------ #

    def is_enabled(self) -> bool:
        return self._settings.get_bool("reservation_enabled", True)

    def default_duration(self) -> int:
        return self._settings.get_int("default_reservation_duration", 60)

    def check_admission(
        self,
        table: Optional[Table],
        customer_id: int,
        party_size: int,
        start: datetime,
        duration_minutes: int,
    ) -> Optional[str]:
        """Return why a reservation cannot be admitted, or None if it can."""
        if not self.is_enabled():
            return "Reservation system is currently disabled"

        min_duration = self._settings.get_int("min_reservation_duration", 30)
        max_duration = self._settings.get_int("max_reservation_duration", 180)
        if duration_minutes < min_duration:
            return f"Minimum reservation duration is {min_duration} minutes"
        if duration_minutes > max_duration:
            return f"Maximum reservation duration is {max_duration} minutes"

        if not self._config.min_party_size <= party_size <= self._config.max_party_size:
            return (
                f"Party size must be between {self._config.min_party_size} "
                f"and {self._config.max_party_size}"
            )

        if table is None or not table.is_enabled or table.status != TableStatus.AVAILABLE:
            return "Table not available for reservation"
        if table.capacity < party_size:
            return (
                f"Table capacity ({table.capacity}) is insufficient "
                f"for party size ({party_size})"
            )

        now = self._clock()
        if start <= now:
            return "Reservation time must be in the future"
        max_days = self._settings.get_int("max_reservation_days_ahead", 30)
        if start > now + timedelta(days=max_days):
            return f"Reservations can only be made up to {max_days} days in advance"

        return self.conflicts.find_conflict(table.id, customer_id, start, duration_minutes)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def create_reservation(
        self,
        table_id: int,
        customer_id: int,
        party_size: int,
        start: datetime,
        duration_minutes: Optional[int] = None,
        created_by_role: str = Role.CUSTOMER.value,
        arm_vacate_alert: bool = False,
    ) -> ReservationResult:
        """Reserve a table for a customer after every admission check passes."""
        duration = duration_minutes or self.default_duration()
        table = self._tables.get(table_id)

        reason = self.check_admission(table, customer_id, party_size, start, duration)
        if reason:
            logger.info("Reservation rejected for table %d: %s", table_id, reason)
            return {"success": False, "message": reason}

        reserved = self._tables.set_reserved(table_id, customer_id, start, duration)
        record = self._record(
            customer_id=customer_id,
            table=reserved,
            party_size=party_size,
            reservation_time=start,
            duration=duration,
            status=ReservationStatus.RESERVED,
            created_by_id=customer_id,
            created_by_role=created_by_role,
        )
        logger.info(
            "Reservation %d created: Table #%d for customer %d at %s (%d min)",
            record.id, reserved.table_number, customer_id, start.isoformat(), duration,
        )

        if arm_vacate_alert:
            self._arm_vacate_alert(reserved, customer_id, duration)

        return {
            "success": True,
            "message": "Reservation made successfully",
            "table": reserved,
            "reservation": record,
        }

    def cancel_reservation(self, table_id: int, user_id: int, role: str) -> ReservationResult:
        """Release a reserved table. Customers may only cancel their own."""
        table = self._tables.get(table_id)
        if table is None or table.status != TableStatus.RESERVED:
            return {"success": False, "message": "Reservation not found"}
        if role == Role.CUSTOMER.value and table.current_customer_id != user_id:
            return {"success": False, "message": "Not authorized to cancel this reservation"}

        holder = table.current_customer_id
        released = self._tables.set_available(table_id)
        self._close_history(table_id, holder, {ReservationStatus.RESERVED},
                            ReservationStatus.CANCELLED)
        self._scheduler.cancel(table_id)
        logger.info("Reservation on Table #%d cancelled by user %d", table.table_number, user_id)
        return {
            "success": True,
            "message": f"Your reservation for Table #{table.table_number} has been cancelled.",
            "table": released,
        }

    def seat_reservation(self, table_id: int, seated_by_id: int) -> ReservationResult:
        """Seat the holder of a reservation and arm the vacate alert."""
        table = self._tables.get(table_id)
        if table is None or table.status != TableStatus.RESERVED:
            return {"success": False, "message": "Reservation not found"}

        customer_id = table.current_customer_id
        duration = table.reservation_duration or self.default_duration()
        now = self._clock()
        occupied = self._tables.set_occupied(table_id, customer_id, now, duration)

        with self._history_lock:
            for record in self._history:
                if (
                    record.table_id == table_id
                    and record.customer_id == customer_id
                    and record.status == ReservationStatus.RESERVED
                ):
                    record.status = ReservationStatus.OCCUPIED
                    record.seated_by_id = seated_by_id
                    break

        self._arm_vacate_alert(occupied, customer_id, duration)
        return {
            "success": True,
            "message": "Customer seated from reservation",
            "table": occupied,
            "expected_vacate_time": now + timedelta(minutes=duration),
        }

    def seat_walk_in(
        self,
        table_id: int,
        customer_id: int,
        party_size: int,
        duration_minutes: Optional[int] = None,
        seated_by_id: Optional[int] = None,
    ) -> ReservationResult:
        """Occupy an available table immediately, e.g. for a queued party."""
        table = self._tables.get(table_id)
        if table is None or not table.is_enabled or table.status != TableStatus.AVAILABLE:
            return {"success": False, "message": "Table not available or disabled"}
        if table.capacity < party_size:
            return {"success": False, "message": "Table capacity insufficient for party size"}

        duration = duration_minutes or self.default_duration()
        now = self._clock()
        occupied = self._tables.set_occupied(table_id, customer_id, now, duration)
        record = self._record(
            customer_id=customer_id,
            table=occupied,
            party_size=party_size,
            reservation_time=now,
            duration=duration,
            status=ReservationStatus.OCCUPIED,
            created_by_id=seated_by_id,
            created_by_role=Role.MANAGER.value,
        )
        record.seated_by_id = seated_by_id

        self._arm_vacate_alert(occupied, customer_id, duration)
        return {
            "success": True,
            "message": "Customer seated successfully",
            "table": occupied,
            "reservation": record,
            "expected_vacate_time": now + timedelta(minutes=duration),
        }

    def vacate_table(self, table_id: int) -> ReservationResult:
        """Free a table by hand and drop any pending vacate alert."""
        table = self._tables.get(table_id)
        if table is None:
            return {"success": False, "message": "Table not found"}

        holder = table.current_customer_id
        released = self._tables.set_available(table_id)
        if holder is not None:
            self._close_history(
                table_id, holder,
                {ReservationStatus.RESERVED, ReservationStatus.OCCUPIED},
                ReservationStatus.COMPLETED,
            )
        self._scheduler.cancel(table_id)
        return {"success": True, "message": "Table is now available", "table": released}

    # ------------------------------------------------------------------ #
    # History
    # ------------------------------------------------------------------ #

    def history(
        self,
        user_id: int,
        role: str,
        status: Optional[ReservationStatus] = None,
    ) -> list[ReservationRecord]:
        """Newest first. Customers only ever see their own records."""
        with self._history_lock:
            records = [
                r.model_copy()
                for r in self._history
                if (role != Role.CUSTOMER.value or r.customer_id == user_id)
                and (status is None or r.status == status)
            ]
        return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)

    def _record(
        self,
        customer_id: int,
        table: Table,
        party_size: int,
        reservation_time: datetime,
        duration: int,
        status: ReservationStatus,
        created_by_id: Optional[int],
        created_by_role: str,
    ) -> ReservationRecord:
        with self._history_lock:
            record = ReservationRecord(
                id=next(self._history_ids),
                customer_id=customer_id,
                table_id=table.id,
                table_number=table.table_number,
                table_type=table.type,
                party_size=party_size,
                reservation_time=reservation_time,
                reservation_duration=duration,
                status=status,
                created_by_id=created_by_id,
                created_by_role=created_by_role,
                created_at=self._clock(),
            )
            self._history.append(record)
            return record

    def _close_history(
        self,
        table_id: int,
        customer_id: Optional[int],
        open_statuses: set[ReservationStatus],
        final_status: ReservationStatus,
    ) -> None:
        with self._history_lock:
            for record in reversed(self._history):
                if (
                    record.table_id == table_id
                    and record.customer_id == customer_id
                    and record.status in open_statuses
                ):
                    record.status = final_status
                    record.completed_at = self._clock()
                    return

    def _arm_vacate_alert(self, table: Table, customer_id: int, duration: int) -> None:
        # The table write has already happened; a scheduling failure is not rolled back.
        try:
            self._scheduler.schedule(
                table.id,
                table.table_number,
                customer_id,
                self._users.display_name(customer_id),
                duration,
            )
        except Exception:
            logger.exception("Failed to schedule vacate alert for Table #%d", table.table_number)

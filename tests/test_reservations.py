"""Tests for reservation admission, conflicts, and the table lifecycle."""

from datetime import timedelta

import pytest

from table_assistant.schemas.reservation_schema import ReservationStatus
from table_assistant.schemas.table_schema import Table, TableStatus
from table_assistant.tools.reservations import (
    ReservationConflictResolver,
    ReservationService,
    windows_overlap,
)
from table_assistant.tools.settings_store import SettingsStore
from table_assistant.tools.tables import InMemoryTableStore
from tests.conftest import CUSTOMER_ID, MANAGER_ID, OTHER_CUSTOMER_ID, START, tomorrow_at


class TestWindowsOverlap:
    def test_touching_windows_do_not_overlap(self):
        assert windows_overlap(tomorrow_at(11), tomorrow_at(12), tomorrow_at(10), tomorrow_at(11)) \
            is False

    def test_partial_overlap(self):
        assert windows_overlap(
            tomorrow_at(11), tomorrow_at(12), tomorrow_at(10), tomorrow_at(11, 30)
        ) is True

    def test_containment(self):
        assert windows_overlap(
            tomorrow_at(10, 15), tomorrow_at(10, 45), tomorrow_at(10), tomorrow_at(11)
        ) is True


class TestConflictResolver:
    def test_touching_reservations_on_same_table(self, reservations):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(10), 60)
        assert reservations.conflicts.has_conflict(3, OTHER_CUSTOMER_ID, tomorrow_at(11), 60) \
            is False

    def test_overlapping_reservations_on_same_table(self, reservations):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(10), 90)
        assert reservations.conflicts.find_conflict(
            3, OTHER_CUSTOMER_ID, tomorrow_at(11), 60
        ) == "This table has a conflicting reservation at that time"

    def test_customer_cannot_hold_two_overlapping_tables(self, reservations):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(10), 60)
        assert reservations.conflicts.find_conflict(
            4, CUSTOMER_ID, tomorrow_at(10, 30), 60
        ) == "You already have a reservation at this time"

    def test_missing_duration_falls_back_to_default(self):
        start = tomorrow_at(18)
        store = InMemoryTableStore([
            Table(
                id=1, table_number=1, capacity=4, status=TableStatus.RESERVED,
                current_customer_id=CUSTOMER_ID, reservation_time=start,
            ),
        ])
        resolver = ReservationConflictResolver(store, SettingsStore())
        assert resolver.has_conflict(1, OTHER_CUSTOMER_ID, start + timedelta(minutes=59), 30)
        assert not resolver.has_conflict(1, OTHER_CUSTOMER_ID, start + timedelta(minutes=60), 30)


class TestAdmission:
    def test_successful_reservation(self, reservations, table_store):
        result = reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19))

        assert result["success"] is True
        table = table_store.get(3)
        assert table.status == TableStatus.RESERVED
        assert table.current_customer_id == CUSTOMER_ID
        assert table.reservation_time == tomorrow_at(19)
        assert table.reservation_duration == 60
        assert result["reservation"].status == ReservationStatus.RESERVED

    @pytest.mark.parametrize("kwargs,reason", [
        ({"duration_minutes": 20}, "Minimum reservation duration is 30 minutes"),
        ({"duration_minutes": 200}, "Maximum reservation duration is 180 minutes"),
        ({"party_size": 6}, "Table capacity (4) is insufficient for party size (6)"),
        ({"party_size": 25}, "Party size must be between 1 and 20"),
        ({"start": START - timedelta(minutes=1)}, "Reservation time must be in the future"),
        ({"start": START}, "Reservation time must be in the future"),
        ({"start": START + timedelta(days=31)},
         "Reservations can only be made up to 30 days in advance"),
        ({"table_id": 99}, "Table not available for reservation"),
    ])
    def test_rejections_have_specific_reason(self, reservations, table_store, kwargs, reason):
        args = {"table_id": 3, "customer_id": CUSTOMER_ID, "party_size": 4,
                "start": tomorrow_at(19)}
        args.update(kwargs)

        result = reservations.create_reservation(**args)

        assert result == {"success": False, "message": reason}
        assert table_store.get(3).status == TableStatus.AVAILABLE
        assert reservations.history(MANAGER_ID, "Manager") == []

    def test_disabled_toggle(self, reservations, settings_store):
        settings_store.set("reservation_enabled", "false")
        result = reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19))
        assert result["message"] == "Reservation system is currently disabled"

    def test_table_already_reserved(self, reservations):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19))
        result = reservations.create_reservation(3, OTHER_CUSTOMER_ID, 4, tomorrow_at(12))
        assert result["message"] == "Table not available for reservation"

    def test_disabled_table(self, settings_store, scheduler, users, clock):
        store = InMemoryTableStore([Table(id=1, table_number=1, capacity=4, is_enabled=False)])
        service = ReservationService(store, settings_store, scheduler, users, clock)
        result = service.create_reservation(1, CUSTOMER_ID, 2, tomorrow_at(19))
        assert result["message"] == "Table not available for reservation"

    def test_vacate_alert_armed_on_request(self, reservations, scheduler):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19), arm_vacate_alert=True)
        pending = scheduler.pending()
        assert [e.table_id for e in pending] == [3]
        assert pending[0].customer_name == "John Smith"
        assert pending[0].expected_vacate_time == START + timedelta(minutes=60)

    def test_scheduler_failure_is_not_rolled_back(self, reservations, scheduler, table_store,
                                                  monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("timer backend down")

        monkeypatch.setattr(scheduler, "schedule", boom)
        result = reservations.create_reservation(
            3, CUSTOMER_ID, 4, tomorrow_at(19), arm_vacate_alert=True
        )
        assert result["success"] is True
        assert table_store.get(3).status == TableStatus.RESERVED


class TestLifecycle:
    def test_customer_cannot_cancel_someone_elses_reservation(self, reservations):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19))
        result = reservations.cancel_reservation(3, OTHER_CUSTOMER_ID, "Customer")
        assert result["success"] is False
        assert result["message"] == "Not authorized to cancel this reservation"

    def test_cancel_frees_table_and_alert(self, reservations, scheduler, table_store):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19), arm_vacate_alert=True)

        result = reservations.cancel_reservation(3, MANAGER_ID, "Manager")

        assert result["success"] is True
        assert table_store.get(3).status == TableStatus.AVAILABLE
        assert scheduler.pending() == []
        history = reservations.history(CUSTOMER_ID, "Customer")
        assert history[0].status == ReservationStatus.CANCELLED
        assert history[0].completed_at == START

    def test_cancel_without_reservation(self, reservations):
        result = reservations.cancel_reservation(3, CUSTOMER_ID, "Customer")
        assert result == {"success": False, "message": "Reservation not found"}

    def test_seat_reservation_arms_vacate_alert(self, reservations, scheduler, table_store, clock):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19), 90)
        clock.advance(days=1, hours=7)

        result = reservations.seat_reservation(3, MANAGER_ID)

        assert result["success"] is True
        table = table_store.get(3)
        assert table.status == TableStatus.OCCUPIED
        assert table.occupied_at == clock()
        assert result["expected_vacate_time"] == clock() + timedelta(minutes=90)
        assert [e.table_id for e in scheduler.pending()] == [3]
        record = reservations.history(CUSTOMER_ID, "Customer")[0]
        assert record.status == ReservationStatus.OCCUPIED
        assert record.seated_by_id == MANAGER_ID

    def test_walk_in_and_vacate(self, reservations, scheduler, table_store):
        seated = reservations.seat_walk_in(5, CUSTOMER_ID, 5, seated_by_id=MANAGER_ID)
        assert seated["success"] is True
        assert table_store.get(5).status == TableStatus.OCCUPIED

        vacated = reservations.vacate_table(5)

        assert vacated["success"] is True
        assert table_store.get(5).status == TableStatus.AVAILABLE
        assert scheduler.pending() == []
        assert reservations.history(CUSTOMER_ID, "Customer")[0].status == \
            ReservationStatus.COMPLETED

    def test_walk_in_capacity_check(self, reservations):
        result = reservations.seat_walk_in(1, CUSTOMER_ID, 4)
        assert result["message"] == "Table capacity insufficient for party size"

    def test_vacate_unknown_table(self, reservations):
        assert reservations.vacate_table(99)["message"] == "Table not found"


class TestHistory:
    def test_customers_see_only_their_own(self, reservations):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19))
        reservations.create_reservation(4, OTHER_CUSTOMER_ID, 2, tomorrow_at(20))

        mine = reservations.history(CUSTOMER_ID, "Customer")
        everyone = reservations.history(MANAGER_ID, "Manager")

        assert [r.table_id for r in mine] == [3]
        assert [r.table_id for r in everyone] == [4, 3]

    def test_status_filter(self, reservations):
        reservations.create_reservation(3, CUSTOMER_ID, 4, tomorrow_at(19))
        reservations.create_reservation(4, OTHER_CUSTOMER_ID, 2, tomorrow_at(20))
        reservations.cancel_reservation(4, OTHER_CUSTOMER_ID, "Customer")

        cancelled = reservations.history(MANAGER_ID, "Admin", ReservationStatus.CANCELLED)
        assert [r.table_id for r in cancelled] == [4]

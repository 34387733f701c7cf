"""Tests for the vacate notification scheduler."""

import time
from datetime import datetime, timedelta

from table_assistant.scheduling.notification_scheduler import VacateNotificationScheduler
from tests.conftest import START


class TestScheduling:
    def test_schedule_computes_vacate_and_notify_times(self, scheduler):
        entry = scheduler.schedule(3, 3, 10, "John Smith", 60)
        assert entry.expected_vacate_time == START + timedelta(minutes=60)
        assert entry.notify_at == START + timedelta(minutes=55)
        assert [e.table_id for e in scheduler.pending()] == [3]

    def test_nothing_fires_before_due(self, scheduler, clock):
        scheduler.schedule(3, 3, 10, "John Smith", 60)
        clock.advance(minutes=54)
        assert scheduler.run_due() == []
        assert scheduler.unread_count() == 0

    def test_fires_at_notify_time(self, scheduler, clock):
        scheduler.schedule(3, 3, 10, "John Smith", 60)
        clock.advance(minutes=55)

        fired = scheduler.run_due()

        assert len(fired) == 1
        assert fired[0].table_number == 3
        assert fired[0].customer_name == "John Smith"
        assert fired[0].message == (
            "Table #3 will be vacated at 1:00 PM (in 5 minutes). Customer: John Smith"
        )
        assert scheduler.pending() == []

    def test_lead_time_follows_setting(self, scheduler, settings_store):
        settings_store.set("notification_minutes_before", "15")
        entry = scheduler.schedule(3, 3, 10, "John Smith", 60)
        assert entry.notify_at == START + timedelta(minutes=45)

    def test_past_lead_time_fires_immediately(self, scheduler):
        scheduler.schedule(3, 3, 10, "John Smith", 3)
        assert scheduler.pending() == []
        assert scheduler.unread_count() == 1

    def test_rescheduling_replaces_previous_alert(self, scheduler, clock):
        scheduler.schedule(3, 3, 10, "John Smith", 30)
        scheduler.schedule(3, 3, 11, "Sarah Johnson", 90)
        assert len(scheduler.pending()) == 1

        clock.advance(hours=3)
        fired = scheduler.run_due()

        assert [n.customer_name for n in fired] == ["Sarah Johnson"]
        assert scheduler.run_due() == []

    def test_cancel(self, scheduler, clock):
        scheduler.schedule(3, 3, 10, "John Smith", 60)
        assert scheduler.cancel(3) is True
        assert scheduler.cancel(3) is False

        clock.advance(hours=2)
        assert scheduler.run_due() == []
        assert scheduler.list_notifications() == []

    def test_due_alerts_fire_in_order(self, scheduler, clock):
        scheduler.schedule(1, 1, 10, "John Smith", 40)
        scheduler.schedule(2, 2, 11, "Sarah Johnson", 20)
        clock.advance(hours=1)
        assert [n.table_id for n in scheduler.run_due()] == [2, 1]


class TestNotificationFeed:
    def test_retention_cap_keeps_newest(self, scheduler):
        for table_id in range(1, 52):
            scheduler.schedule(table_id, table_id, 10, "John Smith", 0)

        notifications = scheduler.list_notifications()
        assert len(notifications) == 50
        assert notifications[0].id == 51
        assert notifications[-1].id == 2

    def test_ids_are_per_scheduler_instance(self, settings_store, clock):
        first = VacateNotificationScheduler(settings_store, clock)
        second = VacateNotificationScheduler(settings_store, clock)
        first.schedule(1, 1, 10, "John Smith", 0)
        second.schedule(1, 1, 10, "John Smith", 0)
        assert first.list_notifications()[0].id == 1
        assert second.list_notifications()[0].id == 1

    def test_mark_read(self, scheduler):
        scheduler.schedule(1, 1, 10, "John Smith", 0)
        scheduler.schedule(2, 2, 11, "Sarah Johnson", 0)

        assert scheduler.mark_read(1) is True
        assert scheduler.mark_read(1) is True
        assert scheduler.mark_read(99) is False
        assert scheduler.unread_count() == 1
        assert [n.id for n in scheduler.list_notifications(unread_only=True)] == [2]

    def test_mark_all_read(self, scheduler):
        scheduler.schedule(1, 1, 10, "John Smith", 0)
        scheduler.schedule(2, 2, 11, "Sarah Johnson", 0)
        scheduler.mark_all_read()
        assert scheduler.unread_count() == 0
        assert scheduler.list_notifications(unread_only=True) == []

    def test_listed_copies_do_not_leak_writes(self, scheduler):
        scheduler.schedule(1, 1, 10, "John Smith", 0)
        scheduler.list_notifications()[0].read = True
        assert scheduler.unread_count() == 1


class TestNearingVacate:
    def test_window_and_order(self, scheduler):
        scheduler.schedule(1, 1, 10, "John Smith", 60)
        scheduler.schedule(2, 2, 11, "Sarah Johnson", 10)
        scheduler.schedule(3, 3, 12, "Guest", 8)

        alerts = scheduler.nearing_vacate()

        assert [(a.table_id, a.minutes_remaining) for a in alerts] == [(3, 8), (2, 10)]

    def test_overdue_tables_are_excluded(self, scheduler, clock):
        scheduler.schedule(1, 1, 10, "John Smith", 8)
        clock.advance(minutes=9)
        assert scheduler.nearing_vacate() == []

    def test_table_enters_window_as_time_passes(self, scheduler, clock):
        scheduler.schedule(1, 1, 10, "John Smith", 60)
        assert scheduler.nearing_vacate() == []
        clock.advance(minutes=50)
        assert [a.minutes_remaining for a in scheduler.nearing_vacate()] == [10]


class TestJobRegistration:
    def test_schedule_registers_one_job_per_table(self, scheduler):
        entry = scheduler.schedule(3, 3, 10, "John Smith", 60)

        assert entry.job_id == "vacate-3"
        assert scheduler.job_ids() == ["vacate-3"]
        job = scheduler._scheduler.get_job("vacate-3")
        assert job.args == (3, entry.notify_at)

    def test_rescheduling_keeps_a_single_job(self, scheduler):
        scheduler.schedule(3, 3, 10, "John Smith", 30)
        entry = scheduler.schedule(3, 3, 11, "Sarah Johnson", 90)

        assert scheduler.job_ids() == ["vacate-3"]
        assert scheduler._scheduler.get_job("vacate-3").args == (3, entry.notify_at)

    def test_cancel_removes_job(self, scheduler):
        scheduler.schedule(3, 3, 10, "John Smith", 60)
        scheduler.cancel(3)
        assert scheduler.job_ids() == []

    def test_run_due_removes_fired_jobs(self, scheduler, clock):
        scheduler.schedule(1, 1, 10, "John Smith", 20)
        scheduler.schedule(2, 2, 11, "Sarah Johnson", 120)
        clock.advance(minutes=30)

        scheduler.run_due()

        assert scheduler.job_ids() == ["vacate-2"]

    def test_immediate_alert_registers_no_job(self, scheduler):
        scheduler.schedule(3, 3, 10, "John Smith", 0)
        assert scheduler.job_ids() == []

    def test_job_callback_fires_alert(self, scheduler):
        entry = scheduler.schedule(3, 3, 10, "John Smith", 60)

        scheduler._fire_job(3, entry.notify_at)

        assert scheduler.unread_count() == 1
        assert scheduler.pending() == []

    def test_stale_job_callback_is_ignored(self, scheduler):
        first = scheduler.schedule(3, 3, 10, "John Smith", 30)
        scheduler.schedule(3, 3, 11, "Sarah Johnson", 90)

        scheduler._fire_job(3, first.notify_at)

        assert scheduler.unread_count() == 0
        assert [e.customer_name for e in scheduler.pending()] == ["Sarah Johnson"]


class TestBackgroundScheduler:
    def test_start_and_stop(self, scheduler):
        scheduler.start()
        scheduler.start()
        assert scheduler.running is True

        scheduler.stop()
        scheduler.stop()
        assert scheduler.running is False

        scheduler.schedule(1, 1, 10, "John Smith", 0)
        assert scheduler.unread_count() == 1

    def test_started_scheduler_fires_job_on_wall_clock(self, settings_store):
        settings_store.set("notification_minutes_before", "0")
        # Clock runs just under a minute behind, so a 1-minute stay is due in half a second.
        scheduler = VacateNotificationScheduler(
            settings_store, lambda: datetime.now() - timedelta(seconds=59.5)
        )
        scheduler.start()
        try:
            scheduler.schedule(1, 1, 10, "John Smith", 1)
            assert scheduler.job_ids() == ["vacate-1"]

            deadline = time.monotonic() + 5
            while scheduler.unread_count() == 0 and time.monotonic() < deadline:
                time.sleep(0.05)
        finally:
            scheduler.stop()

        assert scheduler.unread_count() == 1
        assert scheduler.pending() == []
        assert scheduler.job_ids() == []

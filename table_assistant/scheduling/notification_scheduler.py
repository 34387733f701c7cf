"""
Vacate notification scheduler.

Keeps one fire-once alert per occupied or reserved table and turns it into
a manager-facing notification shortly before the table is expected to free
up. Each armed alert is an APScheduler "date" job with id
`vacate-<table_id>`; re-arming a table replaces its job.

`run_due()` fires everything due by the injected clock. Tests and request
hooks drive it directly; in a running service `start()` hands the jobs to
the background scheduler instead.

Usage:
    scheduler = VacateNotificationScheduler(SettingsStore())
    scheduler.start()
    scheduler.schedule(3, 3, 10, "John Smith", duration_minutes=60)
    ...
    scheduler.list_notifications(unread_only=True)
    scheduler.stop()
"""

import itertools
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from table_assistant.config import NotificationConfig, settings
from table_assistant.schemas.notification_schema import (
    ManagerNotification,
    ScheduledNotification,
    TableAlert,
)
from table_assistant.tools.settings_store import SettingsStore
from table_assistant.utils import format_time

logger = logging.getLogger(__name__)


def _job_id(table_id: int) -> str:
    return f"vacate-{table_id}"


def _on_job_error(event) -> None:
    logger.error(
        "Vacate job failed: job_id=%s error=%s\n%s",
        event.job_id, event.exception, event.traceback,
    )


def _on_job_missed(event) -> None:
    logger.warning(
        "Vacate job missed: job_id=%s scheduled_run_time=%s",
        event.job_id, event.scheduled_run_time,
    )


class VacateNotificationScheduler:
    """Arms, cancels, and fires per-table vacate alerts."""

    def __init__(
        self,
        settings_store: SettingsStore,
        clock: Callable[[], datetime] = datetime.now,
        config: Optional[NotificationConfig] = None,
    ) -> None:
        self._settings = settings_store
        self._clock = clock
        self._config = config or settings.notifications
        self._lock = threading.RLock()
        self._scheduled: dict[int, ScheduledNotification] = {}
        self._notification_ids = itertools.count(1)
        self._notifications: list[ManagerNotification] = []
        self._scheduler = BackgroundScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": self._config.misfire_grace_seconds,
            }
        )
        self._scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)

    @property
    def lead_minutes(self) -> int:
        return self._settings.get_int("notification_minutes_before", 5)

    # ------------------------------------------------------------------ #
    # Alerts
    # ------------------------------------------------------------------ #

    def schedule(
        self,
        table_id: int,
        table_number: int,
        customer_id: int,
        customer_name: str,
        duration_minutes: int,
    ) -> ScheduledNotification:
        """
        Arm the vacate alert for a table, replacing any alert already armed.

        The alert is due `lead_minutes` before now + duration. When that
        moment has already passed it fires before this call returns.
        """
        with self._lock:
            self._cancel_locked(table_id)

            now = self._clock()
            expected_vacate = now + timedelta(minutes=duration_minutes)
            notify_at = expected_vacate - timedelta(minutes=self.lead_minutes)
            entry = ScheduledNotification(
                table_id=table_id,
                table_number=table_number,
                customer_id=customer_id,
                customer_name=customer_name,
                expected_vacate_time=expected_vacate,
                notify_at=notify_at,
                job_id=_job_id(table_id),
            )
            self._scheduled[table_id] = entry
            logger.info(
                "Scheduled vacate alert for Table #%d: duration %d min, vacate %s, "
                "notify in %d min",
                table_number, duration_minutes, format_time(expected_vacate),
                max(0, round((notify_at - now).total_seconds() / 60)),
            )

            if notify_at <= now:
                self._fire_locked(table_id)
            else:
                self._scheduler.add_job(
                    self._fire_job,
                    "date",
                    run_date=notify_at,
                    args=[table_id, notify_at],
                    id=entry.job_id,
                    name=f"Vacate alert for Table #{table_number}",
                    replace_existing=True,
                )
            return entry

    def cancel(self, table_id: int) -> bool:
        """Disarm a table's alert. Returns False when nothing was armed."""
        with self._lock:
            return self._cancel_locked(table_id)

    def _cancel_locked(self, table_id: int) -> bool:
        entry = self._scheduled.pop(table_id, None)
        if entry is None:
            return False
        self._remove_job(entry.job_id)
        logger.info("Cancelled vacate alert for Table #%d", entry.table_number)
        return True

    def _remove_job(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            pass

    def run_due(self) -> list[ManagerNotification]:
        """Fire every armed alert whose notify time has been reached."""
        with self._lock:
            now = self._clock()
            due = sorted(
                (e for e in self._scheduled.values() if e.notify_at <= now),
                key=lambda e: e.notify_at,
            )
            fired = []
            for entry in due:
                self._remove_job(entry.job_id)
                fired.append(self._fire_locked(entry.table_id))
        return fired

    def _fire_job(self, table_id: int, notify_at: datetime) -> None:
        """Job callback. Ignores a firing that belongs to an alert since replaced."""
        with self._lock:
            entry = self._scheduled.get(table_id)
            if entry is None or entry.notify_at != notify_at:
                logger.debug("Skipping stale vacate job for table %d", table_id)
                return
            self._fire_locked(table_id)

    def _fire_locked(self, table_id: int) -> ManagerNotification:
        entry = self._scheduled.pop(table_id)
        lead = round((entry.expected_vacate_time - entry.notify_at).total_seconds() / 60)
        notification = ManagerNotification(
            id=next(self._notification_ids),
            table_id=entry.table_id,
            table_number=entry.table_number,
            customer_name=entry.customer_name,
            expected_vacate_time=entry.expected_vacate_time,
            message=(
                f"Table #{entry.table_number} will be vacated at "
                f"{format_time(entry.expected_vacate_time)} (in {lead} minutes). "
                f"Customer: {entry.customer_name}"
            ),
            created_at=self._clock(),
        )
        self._notifications.insert(0, notification)
        del self._notifications[self._config.retention:]
        logger.info("Manager notification: %s", notification.message)
        return notification

    def pending(self) -> list[ScheduledNotification]:
        """Armed alerts, soonest first."""
        with self._lock:
            return sorted(self._scheduled.values(), key=lambda e: e.notify_at)

    def job_ids(self) -> list[str]:
        """Ids of the jobs currently held by the background scheduler."""
        return sorted(job.id for job in self._scheduler.get_jobs())

    def nearing_vacate(self) -> list[TableAlert]:
        """Armed tables expected to free up within lead time + a small margin."""
        with self._lock:
            now = self._clock()
            window = self.lead_minutes + self._config.nearing_vacate_extra_minutes
            alerts = []
            for entry in self._scheduled.values():
                minutes = round((entry.expected_vacate_time - now).total_seconds() / 60)
                if 0 < minutes <= window:
                    alerts.append(
                        TableAlert(
                            table_id=entry.table_id,
                            table_number=entry.table_number,
                            customer_name=entry.customer_name,
                            expected_vacate_time=entry.expected_vacate_time,
                            minutes_remaining=minutes,
                        )
                    )
        return sorted(alerts, key=lambda a: a.minutes_remaining)

    # ------------------------------------------------------------------ #
    # Notification feed
    # ------------------------------------------------------------------ #

    def list_notifications(self, unread_only: bool = False) -> list[ManagerNotification]:
        """Newest first."""
        with self._lock:
            return [
                n.model_copy()
                for n in self._notifications
                if not (unread_only and n.read)
            ]

    def mark_read(self, notification_id: int) -> bool:
        with self._lock:
            for notification in self._notifications:
                if notification.id == notification_id:
                    notification.read = True
                    return True
        return False

    def mark_all_read(self) -> None:
        with self._lock:
            for notification in self._notifications:
                notification.read = True

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._notifications if not n.read)

    # ------------------------------------------------------------------ #
    # Background scheduler
    # ------------------------------------------------------------------ #

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """Let the background scheduler fire armed alerts on wall-clock time."""
        if self._scheduler.running:
            return
        self._scheduler.start()
        logger.info("Vacate scheduler started")

    def stop(self, wait: bool = True) -> None:
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("Vacate scheduler stopped")

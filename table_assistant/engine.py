"""
Booking workflow engine.

Wires the stores, the reservation service, the waiting queue, the vacate
scheduler, and the dialogue driver together and exposes them as a single
object for the presentation layer and manager tooling.

Usage:
    engine = BookingWorkflowEngine()
    engine.start()
    reply = engine.handle_message(10, "Customer", "book a table for 4")
    ...
    engine.stop()
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from table_assistant.config import AppConfig, settings
from table_assistant.conversation.dialogue import DialogueManager
from table_assistant.conversation.intents import Classifier
from table_assistant.conversation.session_store import InMemorySessionStore, SessionStore
from table_assistant.scheduling.notification_scheduler import VacateNotificationScheduler
from table_assistant.schemas.conversation_schema import ChatResponse
from table_assistant.schemas.customer_schema import Role
from table_assistant.schemas.notification_schema import (
    ManagerNotification,
    ScheduledNotification,
    TableAlert,
)
from table_assistant.schemas.reservation_schema import ReservationRecord, ReservationStatus
from table_assistant.tools.customer import UserDirectory
from table_assistant.tools.queue import QueueResult, WaitingQueue
from table_assistant.tools.reservations import ReservationResult, ReservationService
from table_assistant.tools.settings_store import SettingsStore
from table_assistant.tools.tables import InMemoryTableStore, TableStore

logger = logging.getLogger(__name__)


class BookingWorkflowEngine:
    """Facade over the conversation, reservation, queue, and notification components."""

    def __init__(
        self,
        table_store: Optional[TableStore] = None,
        settings_store: Optional[SettingsStore] = None,
        users: Optional[UserDirectory] = None,
        sessions: Optional[SessionStore] = None,
        classifier: Optional[Classifier] = None,
        clock: Callable[[], datetime] = datetime.now,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.config = config or settings
        self.clock = clock
        # An empty store is falsy (__len__ == 0), so test against None.
        self.tables = table_store if table_store is not None else InMemoryTableStore()
        self.settings = settings_store if settings_store is not None else SettingsStore()
        self.users = users if users is not None else UserDirectory()
        self.sessions = (
            sessions
            if sessions is not None
            else InMemorySessionStore(self.config.session.timeout_seconds, clock)
        )
        self.scheduler = VacateNotificationScheduler(
            self.settings, clock, self.config.notifications
        )
        self.reservations = ReservationService(
            self.tables, self.settings, self.scheduler, self.users, clock, self.config.dining
        )
        self.queue = WaitingQueue(self.settings, self.reservations, clock, self.config.dining)
        self.dialogue = DialogueManager(
            self.sessions,
            self.tables,
            self.reservations,
            self.queue,
            classifier=classifier,
            clock=clock,
            config=self.config,
        )

    def start(self) -> None:
        """Start firing vacate alerts in the background."""
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    # ------------------------------------------------------------------ #
    # Conversation
    # ------------------------------------------------------------------ #

    def handle_message(self, user_id: int, role: str, text: str) -> ChatResponse:
        return self.dialogue.handle_message(user_id, role, text)

    def clear_session(self, user_id: int) -> None:
        self.dialogue.clear_session(user_id)

    # ------------------------------------------------------------------ #
    # Table lifecycle
    # ------------------------------------------------------------------ #

    def create_reservation(
        self,
        table_id: int,
        customer_id: int,
        party_size: int,
        start: datetime,
        duration_minutes: Optional[int] = None,
        created_by_role: str = Role.CUSTOMER.value,
    ) -> ReservationResult:
        return self.reservations.create_reservation(
            table_id, customer_id, party_size, start, duration_minutes, created_by_role
        )

    def cancel_reservation(self, table_id: int, user_id: int, role: str) -> ReservationResult:
        return self.reservations.cancel_reservation(table_id, user_id, role)

    def seat_reservation(self, table_id: int, seated_by_id: int) -> ReservationResult:
        return self.reservations.seat_reservation(table_id, seated_by_id)

    def seat_from_queue(
        self, entry_id: int, table_id: int, seated_by_id: Optional[int] = None
    ) -> QueueResult:
        return self.queue.seat(entry_id, table_id, seated_by_id)

    def vacate_table(self, table_id: int) -> ReservationResult:
        return self.reservations.vacate_table(table_id)

    def reservation_history(
        self, user_id: int, role: str, status: Optional[ReservationStatus] = None
    ) -> list[ReservationRecord]:
        return self.reservations.history(user_id, role, status)

    # ------------------------------------------------------------------ #
    # Vacate notifications
    # ------------------------------------------------------------------ #

    def schedule_vacate(
        self,
        table_id: int,
        table_number: int,
        customer_id: int,
        customer_name: str,
        duration_minutes: int,
    ) -> ScheduledNotification:
        return self.scheduler.schedule(
            table_id, table_number, customer_id, customer_name, duration_minutes
        )

    def cancel_notification(self, table_id: int) -> bool:
        return self.scheduler.cancel(table_id)

    def run_due_notifications(self) -> list[ManagerNotification]:
        return self.scheduler.run_due()

    def list_notifications(self, unread_only: bool = False) -> list[ManagerNotification]:
        return self.scheduler.list_notifications(unread_only)

    def unread_count(self) -> int:
        return self.scheduler.unread_count()

    def mark_read(self, notification_id: int) -> bool:
        return self.scheduler.mark_read(notification_id)

    def mark_all_read(self) -> None:
        self.scheduler.mark_all_read()

    def nearing_vacate(self) -> list[TableAlert]:
        return self.scheduler.nearing_vacate()

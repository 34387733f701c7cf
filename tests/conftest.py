"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta

import pytest

from table_assistant.conversation.session_store import InMemorySessionStore
from table_assistant.engine import BookingWorkflowEngine
from table_assistant.scheduling.notification_scheduler import VacateNotificationScheduler
from table_assistant.tools.customer import UserDirectory
from table_assistant.tools.queue import WaitingQueue
from table_assistant.tools.reservations import ReservationService
from table_assistant.tools.settings_store import SettingsStore
from table_assistant.tools.tables import InMemoryTableStore

# Friday, midday.
START = datetime(2025, 3, 14, 12, 0)

CUSTOMER_ID = 10
OTHER_CUSTOMER_ID = 11
MANAGER_ID = 2


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings_store():
    return SettingsStore()


@pytest.fixture
def table_store():
    return InMemoryTableStore()


@pytest.fixture
def users():
    return UserDirectory()


@pytest.fixture
def scheduler(settings_store, clock):
    return VacateNotificationScheduler(settings_store, clock)


@pytest.fixture
def reservations(table_store, settings_store, scheduler, users, clock):
    return ReservationService(table_store, settings_store, scheduler, users, clock)


@pytest.fixture
def waiting_queue(settings_store, reservations, clock):
    return WaitingQueue(settings_store, reservations, clock)


@pytest.fixture
def sessions(clock):
    return InMemorySessionStore(ttl_seconds=300, clock=clock)


@pytest.fixture
def engine(table_store, settings_store, users, sessions, clock):
    return BookingWorkflowEngine(
        table_store=table_store,
        settings_store=settings_store,
        users=users,
        sessions=sessions,
        clock=clock,
    )


def tomorrow_at(hour: int, minute: int = 0) -> datetime:
    return (START + timedelta(days=1)).replace(hour=hour, minute=minute)


def chat(engine: BookingWorkflowEngine, *messages: str, user_id: int = CUSTOMER_ID,
         role: str = "Customer"):
    """Send messages in order and return the last reply."""
    reply = None
    for message in messages:
        reply = engine.handle_message(user_id, role, message)
    return reply

"""Response text and quick-reply sets for the booking assistant."""

from datetime import date, datetime
from typing import Optional

from table_assistant.schemas.conversation_schema import SessionStep
from table_assistant.schemas.reservation_schema import QueueEntry
from table_assistant.schemas.table_schema import Table
from table_assistant.utils import format_date, format_time

MAIN_MENU = ["Check tables", "Make reservation", "Join queue", "Help"]
CAPACITY_CHOICES = ["2", "4", "6", "8"]
CAPACITY_RETRY = ["2", "4", "6", "Cancel"]
DATE_CHOICES = ["Today", "Tomorrow", "Cancel"]
CONFIRM_CHOICES = ["Yes, confirm", "No, cancel"]
AFTER_BOOKING = ["View reservations", "Help"]
RESTART = ["Make reservation", "Help"]
BROWSE = ["Check tables", "Make reservation", "Help"]
QUEUE_MEMBER = ["Queue position", "Leave queue"]
QUEUE_OUTSIDER = ["Join queue", "Check tables"]
NO_TABLES = ["Join queue", "Try different size", "Cancel"]

PROCESS_CANCELLED = "Process cancelled. How can I help you now?"
PERMISSION_DENIED = "Sorry, you don't have permission to perform this action."
GENERIC_FAILURE = "Sorry, I encountered an error. Please try again."
EMPTY_MESSAGE = "Please enter a message"
RESERVATIONS_DISABLED = "Reservation system is currently disabled"


_STEP_HELP = {
    SessionStep.AWAITING_CAPACITY: 'Please enter the number of people ({min}-{max}), '
                                   'or type "cancel" to stop.',
    SessionStep.AWAITING_TABLE_SELECTION: 'Please select a table number from the list, '
                                          'or type "cancel" to stop.',
    SessionStep.AWAITING_DATE: 'Please specify a date like "today", "tomorrow", or "Friday", '
                               'or type "cancel" to stop.',
    SessionStep.AWAITING_TIME: 'Please select a time slot from the options, '
                               'or type "cancel" to stop.',
    SessionStep.AWAITING_CONFIRMATION: 'Please say "yes" to confirm or "no" to cancel.',
}


def step_help(step: SessionStep, min_party: int = 1, max_party: int = 20) -> str:
    """Guidance naming what the given step is still waiting for."""
    template = _STEP_HELP.get(
        step, 'Type "help" for available commands or "cancel" to start over.'
    )
    return template.format(min=min_party, max=max_party)


def table_list(tables: list[Table]) -> str:
    return "\n".join(
        f"{i}. Table #{t.table_number} ({t.type.value}, {t.capacity} seats)"
        for i, t in enumerate(tables, start=1)
    )


def table_choices(tables: list[Table]) -> list[str]:
    return [f"Table {t.table_number}" for t in tables[:3]] + ["Cancel"]


def tables_found(tables: list[Table], capacity: int, reserving: bool) -> str:
    if reserving:
        return (
            f"Found {len(tables)} table(s) for {capacity} people:\n\n{table_list(tables)}\n\n"
            'Which table would you like to reserve? (Say "Table 1" or just the number)'
        )
    return (
        f"Great news! Found {len(tables)} table(s) for {capacity} people:\n\n"
        f"{table_list(tables)}\n\n"
        "Would you like to reserve one? Just say the table number."
    )


def no_tables(capacity: int, table_type: Optional[str]) -> str:
    kind = f"{table_type} " if table_type else ""
    return (
        f"Sorry, no {kind}tables available for {capacity} people right now. "
        "Would you like to join the waiting queue?"
    )


def time_slots(day: date, slots: list[str], max_listed: int) -> str:
    listed = " | ".join(slots[:max_listed])
    more = f"\n...and {len(slots) - max_listed} more slots" if len(slots) > max_listed else ""
    return (
        f"Date set to {format_date(day)}.\n\n"
        f"Available time slots:\n{listed}{more}\n\n"
        "Please select a time:"
    )


def reservation_summary(table: Table, day: date, start: datetime, party_size: int) -> str:
    return (
        "Reservation Summary:\n"
        f"- Table: {table.label()}\n"
        f"- Date: {format_date(day)}\n"
        f"- Time: {format_time(start)}\n"
        f"- Party size: {party_size}\n\n"
        'Would you like to confirm this reservation? Say "yes" to confirm or "no" to cancel.'
    )


def reservation_confirmed(table: Table, start: datetime, party_size: int) -> str:
    return (
        "Reservation confirmed!\n\n"
        f"- Table #{table.table_number} ({table.type.value})\n"
        f"- {format_date(start.date())} at {format_time(start)}\n"
        f"- Party size: {party_size}\n\n"
        "See you then!"
    )


def help_text(is_customer: bool) -> str:
    if is_customer:
        return (
            "Here's what I can help you with:\n"
            '- Check table availability - "Is a table available for 4?"\n'
            '- Make a reservation - "Book a table for 4"\n'
            '- Join the queue - "Add me to the queue"\n'
            "- Check queue position - \"What's my queue position?\"\n"
            '- View reservations - "Show my reservations"\n'
            '- Cancel reservation - "Cancel my reservation"'
        )
    return (
        "Manager commands:\n"
        '- Check tables - "Show available tables"\n'
        '- View stats - "Show the stats dashboard"\n'
        '- View reservations - "Show all reservations"'
    )


def greeting(restaurant_name: str) -> str:
    return f"Hello! Welcome to {restaurant_name}. How can I help you today?"


def queue_position(position: int, total: int, wait: int, party_size: int) -> str:
    return (
        f"You're #{position} in the queue ({total} total waiting).\n"
        f"Estimated wait: ~{wait} minutes. Party size: {party_size}."
    )


def queue_joined(entry: QueueEntry, wait: int) -> str:
    return (
        "You've been added to the queue!\n"
        f"Position: #{entry.position}\n"
        f"Party size: {entry.party_size}\n"
        f"Estimated wait: ~{wait} minutes"
    )


def reservation_list(tables: list[Table]) -> str:
    lines = [
        f"- Table #{t.table_number} on {format_date(t.reservation_time.date())} "
        f"at {format_time(t.reservation_time)}"
        for t in tables
    ]
    return "Your reservations:\n" + "\n".join(lines)


def manager_stats(available: int, occupied: int, reserved: int, total: int, waiting: int) -> str:
    return (
        "Current Status:\n"
        f"- Tables: {available} available, {occupied} occupied, {reserved} reserved "
        f"({total} total)\n"
        f"- Queue: {waiting} parties waiting"
    )


NOTHING_TO_CONFIRM = (
    "There's nothing to confirm right now. Would you like to:\n"
    "- Make a reservation\n"
    "- Check available tables\n"
    "- Join the queue"
)

UNKNOWN_REQUEST = (
    "I'm not sure what you mean. Try saying:\n"
    '- "Book a table for 4"\n'
    '- "Check available tables"\n'
    '- "Join the queue"\n'
    '- "Help" for more options'
)

"""Shared formatting helpers used across the booking assistant."""

from datetime import date, datetime, time


def format_clock(hour: int, minute: int) -> str:
    """Render a 24-hour time as a 12-hour label.

    Examples:
        >>> format_clock(19, 0)
        '7:00 PM'
        >>> format_clock(0, 30)
        '12:30 AM'
    """
    display_hour = hour % 12 or 12
    suffix = "PM" if hour >= 12 else "AM"
    return f"{display_hour}:{minute:02d} {suffix}"


def format_time(value: datetime) -> str:
    """Render the time part of a datetime as a 12-hour label."""
    return format_clock(value.hour, value.minute)


def format_date(value: date) -> str:
    """Render a date as e.g. 'Saturday, Mar 15'."""
    return f"{value.strftime('%A, %b')} {value.day}"


def parse_hhmm(value: str) -> time:
    """Parse an 'HH:MM' string into a time."""
    return datetime.strptime(value.strip(), "%H:%M").time()

"""
Pure functions that pull dialogue slots out of free text.

None of these look at session state and all of them return None when
nothing usable is in the text; range checks belong to the caller.
"""

import re
from datetime import date, timedelta
from typing import Optional

from table_assistant.schemas.table_schema import TableType

CANCEL_COMMANDS = (
    "cancel", "stop", "exit", "start over", "reset", "quit", "nevermind", "never mind", "abort",
)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_NUMBER = re.compile(r"\d+")
_TABLE_REF = re.compile(r"table\s*#?\s*(\d+)")
_HASH_REF = re.compile(r"#(\d+)")
_BARE_NUMBER = re.compile(r"^(\d+)$")

# Tried in order; the first pattern that matches wins.
_TIME_PATTERNS = (
    re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE),
    re.compile(r"(\d{1,2})\s*(am|pm)", re.IGNORECASE),
    re.compile(r"(\d{1,2}):(\d{2})"),
)


def extract_number(text: str) -> Optional[int]:
    """First integer literal in the text."""
    match = _NUMBER.search(text)
    return int(match.group()) if match else None


def extract_capacity(text: str) -> Optional[int]:
    return extract_number(text)


def extract_table_number(text: str) -> Optional[int]:
    """Accepts "table 3", "table #3", "#3", or a message that is just "3"."""
    match = _TABLE_REF.search(text.lower()) or _HASH_REF.search(text)
    if match:
        return int(match.group(1))
    match = _BARE_NUMBER.match(text.strip())
    return int(match.group(1)) if match else None


def extract_table_type(text: str) -> Optional[TableType]:
    lower = text.lower()
    if "vip" in lower:
        return TableType.VIP
    if "regular" in lower:
        return TableType.REGULAR
    return None


def extract_time(text: str) -> Optional[str]:
    """
    Time of day as 24-hour "HH:MM".

    "7:30 pm" -> "19:30", "9pm" -> "21:00", "12am" -> "00:00", "18:45" -> "18:45".
    Returns None for text with no time or an impossible hour/minute.
    """
    for pattern in _TIME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        groups = match.groups()
        hours = int(groups[0])
        minutes = int(groups[1]) if len(groups) > 1 and groups[1].isdigit() else 0
        meridiem = groups[-1].lower() if groups[-1].isalpha() else None

        if meridiem == "pm" and hours < 12:
            hours += 12
        elif meridiem == "am" and hours == 12:
            hours = 0

        if hours > 23 or minutes > 59:
            return None
        return f"{hours:02d}:{minutes:02d}"
    return None


def extract_date(text: str, today: Optional[date] = None) -> Optional[date]:
    """
    Resolve "today", "tomorrow", "day after tomorrow", or a weekday name.

    A weekday always means the next one: naming today's weekday gives the
    date a week from now.
    """
    today = today or date.today()
    lower = text.lower()

    if "day after tomorrow" in lower:
        return today + timedelta(days=2)
    if "tomorrow" in lower:
        return today + timedelta(days=1)
    if "today" in lower:
        return today

    for index, name in enumerate(WEEKDAYS):
        if name in lower:
            days_until = (index - today.weekday()) % 7 or 7
            return today + timedelta(days=days_until)
    return None


def is_global_cancel(text: str) -> bool:
    """True for any abandon-the-flow phrase, matched exactly or inside the text."""
    lower = text.lower().strip()
    return any(lower == command or command in lower for command in CANCEL_COMMANDS)

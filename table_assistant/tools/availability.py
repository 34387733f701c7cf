"""
Reservation time-slot generation.

Slots run across business hours at a fixed interval. Same-day slots that
start inside the minimum booking lead time are dropped so a diner is never
offered a table they could not reach in time.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, TypedDict

from table_assistant.config import DiningConfig, settings
from table_assistant.utils import format_clock

logger = logging.getLogger(__name__)


class TimeSlotOptions(TypedDict):
    """Result from generate_time_slots."""

    slots: list[str]
    quick_replies: list[str]


def generate_time_slots(
    day: date, now: datetime, config: Optional[DiningConfig] = None
) -> TimeSlotOptions:
    """List bookable start times for `day` plus a short evenly spaced pick."""
    config = config or settings.dining
    earliest = now + timedelta(minutes=config.min_booking_lead_minutes)
    is_today = day == now.date()

    slots: list[str] = []
    for hour in range(config.open_hour, config.close_hour):
        for minute in range(0, 60, config.slot_interval_minutes):
            if is_today and datetime.combine(day, time(hour, minute)) <= earliest:
                continue
            slots.append(format_clock(hour, minute))

    quick_replies: list[str] = []
    if slots:
        step = max(1, len(slots) // config.max_slot_quick_replies)
        for i in range(0, len(slots), step):
            if len(quick_replies) >= config.max_slot_quick_replies:
                break
            quick_replies.append(slots[i])
    quick_replies.append("Cancel")

    logger.debug("Generated %d slots for %s", len(slots), day.isoformat())
    return {"slots": slots, "quick_replies": quick_replies}


def is_within_business_hours(hour: int, config: Optional[DiningConfig] = None) -> bool:
    """True when a start hour falls inside opening hours."""
    config = config or settings.dining
    return config.open_hour <= hour < config.close_hour


def is_far_enough_ahead(
    start: datetime, now: datetime, config: Optional[DiningConfig] = None
) -> bool:
    """True when a start time is strictly more than the minimum booking lead after now.

    A start exactly `min_booking_lead_minutes` away is rejected, matching
    `generate_time_slots`, which never offers that slot for today.
    """
    config = config or settings.dining
    return start > now + timedelta(minutes=config.min_booking_lead_minutes)

"""Tests for time-slot generation and time admission checks."""

from datetime import datetime, timedelta

from table_assistant.tools.availability import (
    generate_time_slots,
    is_far_enough_ahead,
    is_within_business_hours,
)
from tests.conftest import START


class TestGenerateTimeSlots:
    def test_full_day_for_a_future_date(self):
        options = generate_time_slots((START + timedelta(days=1)).date(), START)

        assert len(options["slots"]) == 24
        assert options["slots"][0] == "10:00 AM"
        assert options["slots"][-1] == "9:30 PM"
        assert options["quick_replies"] == [
            "10:00 AM", "12:00 PM", "2:00 PM", "4:00 PM", "6:00 PM", "Cancel",
        ]

    def test_same_day_respects_booking_lead(self):
        options = generate_time_slots(START.date(), START)

        # 12:30 is exactly the lead time away and so is not offered.
        assert options["slots"][0] == "1:00 PM"
        assert len(options["slots"]) == 18

    def test_late_in_the_day_leaves_nothing(self):
        now = START.replace(hour=21, minute=45)
        options = generate_time_slots(now.date(), now)
        assert options == {"slots": [], "quick_replies": ["Cancel"]}


class TestTimeChecks:
    def test_business_hours_are_half_open(self):
        assert is_within_business_hours(10) is True
        assert is_within_business_hours(21) is True
        assert is_within_business_hours(22) is False
        assert is_within_business_hours(9) is False

    def test_lead_time_boundary(self):
        assert is_far_enough_ahead(START + timedelta(minutes=30), START) is False
        assert is_far_enough_ahead(START + timedelta(minutes=31), START) is True

    def test_typed_time_agrees_with_offered_slots(self):
        boundary = START + timedelta(minutes=30)
        offered = generate_time_slots(START.date(), START)["slots"]

        assert "12:30 PM" not in offered
        assert is_far_enough_ahead(boundary, START) is False
        assert "1:00 PM" in offered
        assert is_far_enough_ahead(boundary + timedelta(minutes=30), START) is True

    def test_past_times_rejected(self):
        assert is_far_enough_ahead(datetime(2025, 3, 13, 19, 0), START) is False

"""Tests for shared utility functions."""

from datetime import date, datetime, time

import pytest

from table_assistant.utils import format_clock, format_date, format_time, parse_hhmm


class TestFormatClock:
    @pytest.mark.parametrize("hour,minute,expected", [
        (0, 0, "12:00 AM"),
        (9, 5, "9:05 AM"),
        (12, 0, "12:00 PM"),
        (13, 30, "1:30 PM"),
        (23, 59, "11:59 PM"),
    ])
    def test_twelve_hour_labels(self, hour, minute, expected):
        assert format_clock(hour, minute) == expected

    def test_format_time_uses_clock_part(self):
        assert format_time(datetime(2025, 3, 15, 19, 0)) == "7:00 PM"


class TestFormatDate:
    def test_weekday_month_day(self):
        assert format_date(date(2025, 3, 15)) == "Saturday, Mar 15"

    def test_single_digit_day_not_padded(self):
        assert format_date(date(2025, 3, 3)) == "Monday, Mar 3"


class TestParseHHMM:
    def test_parses(self):
        assert parse_hhmm("19:30") == time(19, 30)

    def test_strips_whitespace(self):
        assert parse_hhmm(" 07:05 ") == time(7, 5)

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_hhmm("7pm")

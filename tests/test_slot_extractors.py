"""Tests for slot extraction from free text."""

from datetime import date

import pytest

from table_assistant.conversation.slot_extractors import (
    extract_capacity,
    extract_date,
    extract_table_number,
    extract_table_type,
    extract_time,
    is_global_cancel,
)
from table_assistant.schemas.table_schema import TableType

FRIDAY = date(2025, 3, 14)


class TestCapacity:
    def test_first_integer_wins(self):
        assert extract_capacity("table for 4, maybe 6") == 4

    def test_out_of_range_is_still_extracted(self):
        assert extract_capacity("we are 25 people") == 25

    def test_no_number(self):
        assert extract_capacity("a few of us") is None


class TestTableNumber:
    @pytest.mark.parametrize("text,expected", [
        ("table 3", 3),
        ("Table #7", 7),
        ("table number 5", None),
        ("I'd like #2 please", 2),
        ("4", 4),
        ("  8 ", 8),
    ])
    def test_forms(self, text, expected):
        assert extract_table_number(text) == expected

    def test_table_reference_beats_hash(self):
        assert extract_table_number("table 3 not #4") == 3

    def test_number_inside_sentence_is_not_bare(self):
        assert extract_table_number("the 3rd one") is None


class TestTableType:
    def test_vip(self):
        assert extract_table_type("a VIP table for 2") == TableType.VIP

    def test_regular(self):
        assert extract_table_type("regular please") == TableType.REGULAR

    def test_unset(self):
        assert extract_table_type("any table") is None


class TestTime:
    @pytest.mark.parametrize("text,expected", [
        ("12:00 am", "00:00"),
        ("12:00 pm", "12:00"),
        ("9pm", "21:00"),
        ("7:30 PM", "19:30"),
        ("11 am", "11:00"),
        ("12am", "00:00"),
        ("18:45", "18:45"),
        ("at 7:00 pm please", "19:00"),
    ])
    def test_conversions(self, text, expected):
        assert extract_time(text) == expected

    def test_meridiem_pattern_has_priority(self):
        assert extract_time("8 pm, not 18:00") == "20:00"

    def test_no_time(self):
        assert extract_time("sometime in the evening") is None

    def test_impossible_time(self):
        assert extract_time("25:99") is None


class TestDate:
    def test_today(self):
        assert extract_date("today", today=FRIDAY) == FRIDAY

    def test_tomorrow(self):
        assert extract_date("tomorrow night", today=FRIDAY) == date(2025, 3, 15)

    def test_day_after_tomorrow(self):
        assert extract_date("the day after tomorrow", today=FRIDAY) == date(2025, 3, 16)

    def test_same_weekday_is_next_week(self):
        assert extract_date("Friday", today=FRIDAY) == date(2025, 3, 21)

    def test_later_weekday_this_week(self):
        assert extract_date("sunday", today=FRIDAY) == date(2025, 3, 16)

    def test_earlier_weekday_wraps(self):
        assert extract_date("Monday", today=FRIDAY) == date(2025, 3, 17)

    def test_unrecognised(self):
        assert extract_date("next month", today=FRIDAY) is None


class TestGlobalCancel:
    @pytest.mark.parametrize("text", [
        "cancel", "STOP", "let's start over", "reset", "quit", "never mind", "nevermind",
        "abort", "exit",
    ])
    def test_cancel_phrases(self, text):
        assert is_global_cancel(text) is True

    def test_ordinary_text(self):
        assert is_global_cancel("table 3") is False

"""
test_dates.py - Italian calendar helpers
"""

from datetime import date

import pytest

from coursedocs.core.dates import (
    format_hours,
    hours_between,
    italian_month_name,
    italian_weekday_name,
    parse_italian_date,
    parse_minutes,
    split_hourly_blocks,
)


def test_parse_italian_date():
    assert parse_italian_date("01/09/2025") == date(2025, 9, 1)
    assert parse_italian_date(" 1/9/2025 ") == date(2025, 9, 1)
    assert parse_italian_date("2025-09-01") is None
    assert parse_italian_date("") is None


def test_names():
    assert italian_month_name(9) == "Settembre"
    assert italian_month_name(13) == ""
    assert italian_weekday_name(date(2025, 9, 1)) == "Lunedì"


@pytest.mark.parametrize(
    "start, end, expected",
    [("09:00", "17:00", 8.0), ("09:00", "12:30", 3.5), ("", "12:00", 0.0), ("9", "10:00", 0.0)],
)
def test_hours_between(start, end, expected):
    assert hours_between(start, end) == expected


def test_format_hours():
    assert format_hours(8.0) == "8"
    assert format_hours(7.5) == "7.5"


@pytest.mark.parametrize(
    "value, expected",
    [("09:00", 540), ("9:05", 545), ("23:59", 1439), ("24:00", None), ("12:60", None), ("", None), ("9", None)],
)
def test_parse_minutes(value, expected):
    assert parse_minutes(value) == expected


class TestSplitHourlyBlocks:
    def test_full_day_skips_lunch(self):
        blocks = split_hourly_blocks("09:00", "17:00")

        assert len(blocks) == 7
        assert ("13:00", "14:00", "1") not in blocks
        assert blocks[3] == ("12:00", "13:00", "1")
        assert blocks[4] == ("14:00", "15:00", "1")

    def test_partial_last_block(self):
        assert split_hourly_blocks("09:00", "10:30") == [
            ("09:00", "10:00", "1"),
            ("10:00", "10:30", "0.5"),
        ]

    def test_block_overlapping_lunch_dropped(self):
        assert split_hourly_blocks("12:30", "15:00") == [("14:30", "15:00", "0.5")]

    @pytest.mark.parametrize("start, end", [("10:00", "10:00"), ("11:00", "09:00"), ("", "12:00"), ("9", "12:00")])
    def test_no_blocks(self, start, end):
        assert split_hourly_blocks(start, end) == []

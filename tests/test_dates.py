"""
Tests for spoken due-date parsing and time formatting.
"""

from datetime import datetime, timezone

import pytest

from voicetasks.utils.dates import add_month, next_weekday, parse_due_text, parse_generic_date
from voicetasks.utils.timefmt import format_duration, format_time_of_day, hour_range, time_of_day_category

# Wednesday
NOW = datetime(2024, 3, 13, 10, 0)


class TestParseDueText:
    """Tests for the spoken date vocabulary."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("today", datetime(2024, 3, 13, 23, 59, 59)),
            ("Tomorrow", datetime(2024, 3, 14, 23, 59, 59)),
            ("next week", datetime(2024, 3, 20, 23, 59, 59)),
            ("next month", datetime(2024, 4, 13, 23, 59, 59)),
            ("end of week", datetime(2024, 3, 15, 23, 59, 59)),
            ("this week", datetime(2024, 3, 15, 23, 59, 59)),
            ("friday", datetime(2024, 3, 15, 23, 59, 59)),
            ("monday", datetime(2024, 3, 18, 23, 59, 59)),
            ("wednesday", datetime(2024, 3, 20, 23, 59, 59)),
            ("this wednesday", datetime(2024, 3, 13, 23, 59, 59)),
        ],
    )
    def test_vocabulary(self, text, expected):
        assert parse_due_text(text, NOW) == expected

    def test_explicit_dates(self):
        assert parse_due_text("3/20", NOW) == datetime(2024, 3, 20)
        assert parse_due_text("2024-05-01", NOW) == datetime(2024, 5, 1)
        assert parse_due_text("April 2", NOW) == datetime(2024, 4, 2)

    def test_unparseable(self):
        assert parse_due_text("whenever", NOW) is None
        assert parse_due_text("", NOW) is None


class TestHelpers:
    """Tests for calendar helpers."""

    def test_next_weekday_rolls_over(self):
        assert next_weekday(NOW, 2) == datetime(2024, 3, 20, 10, 0)
        assert next_weekday(NOW, 2, allow_today=True) == NOW

    def test_add_month_clamps(self):
        assert add_month(datetime(2024, 1, 31)) == datetime(2024, 2, 29)
        assert add_month(datetime(2024, 12, 15)) == datetime(2025, 1, 15)

    def test_leap_day_without_year(self):
        assert parse_generic_date("2/29", datetime(2023, 1, 1)) is None
        assert parse_generic_date("2/29", datetime(2024, 1, 1)) == datetime(2024, 2, 29)
        assert parse_generic_date("February 29", datetime(2024, 1, 1)) == datetime(2024, 2, 29)

    def test_offset_timestamp_becomes_naive_local(self):
        parsed = parse_generic_date("2024-03-14T17:00:00+00:00", NOW)
        expected = datetime(2024, 3, 14, 17, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

        assert parsed.tzinfo is None
        assert parsed == expected
        # Comparable with the naive times used everywhere else
        assert parsed > NOW


class TestTimeFormatting:
    """Tests for display helpers."""

    def test_duration(self):
        assert format_duration(0) == "0m"
        assert format_duration(45) == "45m"
        assert format_duration(60) == "1h"
        assert format_duration(95) == "1h 35m"

    def test_time_of_day(self):
        assert format_time_of_day(0) == "12 AM"
        assert format_time_of_day(9) == "9 AM"
        assert format_time_of_day(12) == "12 PM"
        assert format_time_of_day(15) == "3 PM"

    def test_hour_range(self):
        assert hour_range(9, 11) == "9 AM - 11 AM"

    def test_category(self):
        assert time_of_day_category(7) == "Morning"
        assert time_of_day_category(13) == "Afternoon"
        assert time_of_day_category(19) == "Evening"
        assert time_of_day_category(2) == "Night"

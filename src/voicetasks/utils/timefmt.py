"""Hour and duration formatting for insights output."""

from __future__ import annotations


def format_time_of_day(hour: int) -> str:
    """0 -> '12 AM', 13 -> '1 PM'."""
    if hour < 12:
        return "12 AM" if hour == 0 else f"{hour} AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM"


def hour_range(start_hour: int, end_hour: int) -> str:
    return f"{format_time_of_day(start_hour)} - {format_time_of_day(end_hour)}"


def time_of_day_category(hour: int) -> str:
    if 6 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 22:
        return "Evening"
    return "Night"


def format_duration(minutes: int) -> str:
    """90 -> '1h 30m'."""
    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"

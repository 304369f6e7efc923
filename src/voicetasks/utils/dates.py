"""
Relative Date Parsing

Resolves the small spoken date vocabulary ("tomorrow", "friday",
"next week", "end of week", "3/14") against a reference time. Relative
forms resolve to the end of the target day.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Optional

from voicetasks.utils.logging import get_logger

logger = get_logger(__name__)


WEEKDAYS = [
    "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
]

# Formats tried, in order, for anything the vocabulary does not cover
_GENERIC_FORMATS = [
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m/%d",
    "%Y-%m-%d %H:%M",
    "%B %d %Y",
    "%B %d, %Y",
    "%B %d",
    "%b %d",
    "%d %B",
]


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=0)


def next_weekday(now: datetime, weekday: int, allow_today: bool = False) -> datetime:
    """
    Next occurrence of a weekday (Monday = 0).

    The same weekday as today rolls to next week unless allow_today is set.
    """
    days_ahead = (weekday - now.weekday()) % 7
    if days_ahead == 0 and not allow_today:
        days_ahead = 7
    return now + timedelta(days=days_ahead)


def add_month(now: datetime) -> datetime:
    """Same day next month, clamped to the month's length."""
    year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def parse_generic_date(text: str, now: datetime) -> Optional[datetime]:
    """
    Parse an explicit date string.

    Formats without a year take the reference year. Timestamps with an
    offset are converted to naive local time.
    """
    text = text.strip().rstrip(".,")
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        pass
    else:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed

    for fmt in _GENERIC_FORMATS:
        if "%Y" in fmt or "%y" in fmt:
            candidate, full_fmt = text, fmt
        else:
            # Parse with the reference year so Feb 29 resolves in leap years
            candidate, full_fmt = f"{text} {now.year}", f"{fmt} %Y"
        try:
            return datetime.strptime(candidate, full_fmt)
        except ValueError:
            continue

    return None


def parse_due_text(text: str, now: datetime) -> Optional[datetime]:
    """
    Resolve spoken due-date text.

    Handles today, tomorrow, next week, next month, this week / end of week
    (the coming Friday) and weekday names, then falls back to an explicit
    date. Returns None when nothing parses.
    """
    clean = text.lower().strip()

    if "today" in clean:
        return end_of_day(now)

    if "tomorrow" in clean:
        return end_of_day(now + timedelta(days=1))

    if "next week" in clean:
        return end_of_day(now + timedelta(days=7))

    if "next month" in clean:
        return end_of_day(add_month(now))

    if "this week" in clean or "end of week" in clean:
        return end_of_day(next_weekday(now, 4, allow_today=True))

    for index, name in enumerate(WEEKDAYS):
        if name in clean:
            target = next_weekday(now, index, allow_today="this" in clean)
            return end_of_day(target)

    parsed = parse_generic_date(text, now)
    if parsed is None:
        logger.debug("due_date_unparsed", text=text)
    return parsed

"""
Italian calendar helpers for DD/MM/YYYY session dates.
"""

import re
from datetime import date, datetime

from coursedocs.domain.constants import (
    ITALIAN_MONTHS,
    ITALIAN_WEEKDAYS,
    LUNCH_BREAK_END,
    LUNCH_BREAK_START,
)


def parse_italian_date(value: str) -> date | None:
    """
    Parse a DD/MM/YYYY date.

    Returns:
        date, or None when the value is empty or malformed
    """
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%d/%m/%Y").date()
    except ValueError:
        return None


def italian_month_name(month: int) -> str:
    """1-based month number → Italian name ("" when out of range)."""
    if 1 <= month <= 12:
        return ITALIAN_MONTHS[month - 1]
    return ""


def italian_weekday_name(day: date) -> str:
    return ITALIAN_WEEKDAYS[day.weekday()]


def hours_between(start: str, end: str) -> float:
    """
    Duration in hours between two HH:MM times.

    A malformed or missing time contributes 0.
    """
    try:
        h1, m1 = (int(part) for part in start.strip().split(":")[:2])
        h2, m2 = (int(part) for part in end.strip().split(":")[:2])
    except (ValueError, AttributeError):
        return 0.0
    return (h2 + m2 / 60) - (h1 + m1 / 60)


def format_hours(hours: float) -> str:
    """One decimal, trailing ".0" dropped: 8.0 → "8", 7.5 → "7.5"."""
    text = f"{hours:.1f}"
    return text[:-2] if text.endswith(".0") else text


_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_minutes(value: str) -> int | None:
    """HH:MM → minutes since midnight (None when malformed or out of range)."""
    match = _TIME_PATTERN.match(value.strip()) if value else None
    if match is None:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def _clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def split_hourly_blocks(start: str, end: str) -> list[tuple[str, str, str]]:
    """
    One-hour lesson blocks between two HH:MM times.

    Blocks overlapping the 13:00-14:00 lunch break are dropped and the last
    block stops at the end time: 09:00-17:00 → 7 blocks.

    Returns:
        (start, end, hours) triples; empty when a time is malformed or
        end is not after start
    """
    first = parse_minutes(start)
    last = parse_minutes(end)
    if first is None or last is None or last <= first:
        return []

    blocks = []
    current = first
    while current < last:
        following = min(current + 60, last)
        if not (current < LUNCH_BREAK_END and following > LUNCH_BREAK_START):
            blocks.append((_clock(current), _clock(following), format_hours((following - current) / 60)))
        current = following
    return blocks

"""Streak tracking for throne-rank.

Pure functions over event timestamps. All calendar days are UTC days.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

Timestamp = datetime | date | str

STREAK_TIERS: list[dict] = [
    {"min": 1, "max": 6, "fires": 1, "label": "Getting started"},
    {"min": 7, "max": 29, "fires": 2, "label": "On a roll"},
    {"min": 30, "max": 99, "fires": 3, "label": "Unstoppable"},
    {"min": 100, "max": None, "fires": 4, "label": "Legendary"},
]


@dataclass
class StreakInfo:
    current_streak: int
    longest_streak: int
    last_active_date: str | None  # YYYY-MM-DD
    is_active_today: bool


def parse_timestamp(value: datetime | str) -> datetime:
    """Parse an ISO-8601 string (or pass a datetime through) as an aware UTC datetime.

    Raises TypeError for anything that is neither a str nor a datetime.
    """
    if not isinstance(value, (str, datetime)):
        raise TypeError(f"Expected an ISO-8601 string or datetime, got {type(value).__name__}")
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_calendar_day(value: Timestamp) -> date:
    """Truncate a timestamp to its UTC calendar day."""
    if isinstance(value, datetime):
        return parse_timestamp(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        return date.fromisoformat(value.strip())
    return parse_timestamp(value).date()


def _distinct_days_desc(timestamps: Iterable[Timestamp]) -> list[date]:
    """Dedup timestamps to calendar days, most recent first."""
    return sorted({to_calendar_day(t) for t in timestamps}, reverse=True)


def calculate_streak(timestamps: Iterable[Timestamp], now: Timestamp | None = None) -> int:
    """Count consecutive active days ending today or yesterday.

    Timestamps may be unordered and may repeat a day. Activity only yesterday
    still counts as a streak of 1; if the latest day is older than yesterday
    the streak is 0 regardless of earlier history.
    """
    days = _distinct_days_desc(timestamps)
    if not days:
        return 0

    today = to_calendar_day(now if now is not None else datetime.now(tz=timezone.utc))
    yesterday = today - timedelta(days=1)
    if days[0] != today and days[0] != yesterday:
        return 0

    streak = 1
    for i in range(len(days) - 1):
        if (days[i] - days[i + 1]).days == 1:
            streak += 1
        else:
            break
    return streak


def calculate_longest_streak(timestamps: Iterable[Timestamp]) -> int:
    """Return the longest run of consecutive active days anywhere in the history."""
    days = _distinct_days_desc(timestamps)
    if not days:
        return 0

    longest = 1
    current = 1
    for i in range(len(days) - 1):
        if (days[i] - days[i + 1]).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def summarize_streak(timestamps: Iterable[Timestamp], now: Timestamp | None = None) -> StreakInfo:
    """Bundle current streak, longest streak and recency for display."""
    days = _distinct_days_desc(timestamps)
    if not days:
        return StreakInfo(
            current_streak=0,
            longest_streak=0,
            last_active_date=None,
            is_active_today=False,
        )

    today = to_calendar_day(now if now is not None else datetime.now(tz=timezone.utc))
    return StreakInfo(
        current_streak=calculate_streak(days, today),
        longest_streak=calculate_longest_streak(days),
        last_active_date=days[0].isoformat(),
        is_active_today=days[0] == today,
    )


def streak_tier(streak: int) -> dict | None:
    """Return the tier dict for a streak length, or None for a zero streak."""
    for tier in STREAK_TIERS:
        high = tier["max"]
        if tier["min"] <= streak and (high is None or streak <= high):
            return tier
    return None

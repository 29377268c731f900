"""Load logged events from JSON and build achievement contexts from them."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from throne_rank.achievements import AchievementContext, LatestLog
from throne_rank.geo import count_unique_locations
from throne_rank.streaks import calculate_streak, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 14  # covers the 7-day week plus the habit sample


class EventFileError(ValueError):
    """Raised when an events file exists but cannot be parsed."""


@dataclass
class LogEvent:
    logged_at: datetime
    bristol_scale: int = 4
    duration_seconds: int = 0
    lat: float | None = None
    lng: float | None = None
    id: str | None = None

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    @classmethod
    def from_dict(cls, data: dict) -> LogEvent:
        """Build an event from a row dict. Raises KeyError/TypeError/ValueError on bad rows."""
        lat = data.get("lat")
        lng = data.get("lng")
        return cls(
            logged_at=parse_timestamp(data["logged_at"]),
            bristol_scale=int(data.get("bristol_scale", 4)),
            duration_seconds=int(data.get("duration_seconds", 0)),
            lat=float(lat) if lat is not None else None,
            lng=float(lng) if lng is not None else None,
            id=str(data["id"]) if data.get("id") is not None else None,
        )


def parse_events(rows: Iterable[dict]) -> list[LogEvent]:
    """Parse row dicts, skipping malformed rows."""
    events: list[LogEvent] = []
    for row in rows:
        try:
            events.append(LogEvent.from_dict(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed event row %r: %s", row, exc)
    return events


def load_events(path: Path) -> list[LogEvent]:
    """Read events from a JSON file.

    Accepts either a list of rows or {"logs": [...]}. A missing file yields an
    empty list; unreadable JSON raises EventFileError.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.debug("Events file %s not found", path)
        return []
    except json.JSONDecodeError as exc:
        raise EventFileError(f"Invalid JSON in {path}: {exc}") from exc

    if isinstance(raw, dict):
        raw = raw.get("logs", [])
    if not isinstance(raw, list):
        raise EventFileError(f"Expected a list of events in {path}")

    events = parse_events(r for r in raw if isinstance(r, dict))
    logger.debug("Loaded %d events from %s", len(events), path)
    return events


def sort_newest_first(events: Iterable[LogEvent]) -> list[LogEvent]:
    return sorted(events, key=lambda e: e.logged_at, reverse=True)


def build_context(
    events: Sequence[LogEvent],
    now: datetime | None = None,
    friend_count: int = 0,
    completed_challenges: int = 0,
    existing_achievements: Iterable[str] = (),
    recent_limit: int = DEFAULT_RECENT_LIMIT,
) -> AchievementContext | None:
    """Aggregate a user's events into an AchievementContext.

    Returns None when there are no events, since there is no latest log.
    """
    if not events:
        return None

    ordered = sort_newest_first(events)
    latest = ordered[0]
    timestamps = [e.logged_at for e in ordered]
    # Keep every log from the latest log's week, even past recent_limit.
    week_start = latest.logged_at.date() - timedelta(days=latest.logged_at.weekday())
    in_week = sum(1 for t in timestamps if t.date() >= week_start)
    located = [(e.lat, e.lng) for e in ordered if e.has_location]

    ctx = AchievementContext(
        total_logs=len(ordered),
        current_streak=calculate_streak(timestamps, now or datetime.now(tz=timezone.utc)),
        latest_log=LatestLog(
            bristol_scale=latest.bristol_scale,
            duration_seconds=latest.duration_seconds,
            logged_at=latest.logged_at,
            lat=latest.lat,
            lng=latest.lng,
        ),
        all_bristol_types=tuple(sorted({e.bristol_scale for e in ordered})),
        friend_count=friend_count,
        completed_challenges=completed_challenges,
        log_times=tuple(timestamps[:max(recent_limit, in_week)]),
        unique_locations=count_unique_locations(located),
        existing_achievements=tuple(existing_achievements),
    )
    logger.debug("Built achievement context: %s", ctx)
    return ctx

"""Friend leaderboard ranking for throne-rank.

Pure functions for computing metric values, ranking entries and comparing
against a previous rank snapshot. Snapshot read/write are the only file I/O.
"""
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from throne_rank.streaks import calculate_streak, parse_timestamp

SORT_OPTIONS = ("streak", "weekly", "monthly")
_WINDOW_DAYS = {"weekly": 7, "monthly": 30}


@dataclass
class LeaderboardEntry:
    user_id: str
    username: str
    value: int
    rank: int = 0


def metric_value(timestamps: Iterable[datetime | str], sort_by: str, now: datetime | None = None) -> int:
    """Compute a user's leaderboard value.

    streak: current streak. weekly/monthly: number of logs in the last 7/30 days.
    """
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort: {sort_by!r}. Must be one of: {', '.join(SORT_OPTIONS)}")
    ref = parse_timestamp(now) if now else datetime.now(tz=timezone.utc)
    if sort_by == "streak":
        return calculate_streak(timestamps, ref)
    cutoff = ref - timedelta(days=_WINDOW_DAYS[sort_by])
    return sum(1 for t in timestamps if parse_timestamp(t) >= cutoff)


def rank_entries(entries: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Sort entries by value descending and assign 1-based ranks.

    Ties keep their input order.
    """
    sorted_entries = sorted(entries, key=lambda e: -e.value)
    for i, entry in enumerate(sorted_entries):
        entry.rank = i + 1
    return sorted_entries


def rank_snapshot(entries: Iterable[LeaderboardEntry]) -> dict[str, int]:
    """Map user_id -> rank, suitable for passing back as previous_ranks."""
    return {e.user_id: e.rank for e in entries}


def rank_changes(previous_ranks: dict[str, int], entries: Iterable[LeaderboardEntry]) -> dict[str, str | None]:
    """Compare current ranks with a previous snapshot.

    Returns user_id -> "up", "down", "same", or None if the user had no
    previous rank.
    """
    changes: dict[str, str | None] = {}
    for entry in entries:
        prev = previous_ranks.get(entry.user_id)
        if prev is None:
            changes[entry.user_id] = None
        elif entry.rank < prev:
            changes[entry.user_id] = "up"
        elif entry.rank > prev:
            changes[entry.user_id] = "down"
        else:
            changes[entry.user_id] = "same"
    return changes


def rank_display(rank: int) -> str:
    """Crown and medals for the podium, the number otherwise."""
    if rank == 1:
        return "\U0001f451"
    if rank == 2:
        return "\U0001f948"
    if rank == 3:
        return "\U0001f949"
    return str(rank)


def build_entries(users: list[dict], sort_by: str, now: datetime | None = None) -> list[LeaderboardEntry]:
    """Build ranked entries from user dicts with user_id, username and logs."""
    entries = [
        LeaderboardEntry(
            user_id=str(u["user_id"]),
            username=u.get("username") or str(u["user_id"]),
            value=metric_value(u.get("logs") or [], sort_by, now),
        )
        for u in users
    ]
    return rank_entries(entries)


def _read_sections(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def write_snapshot(ranks: dict[str, int], output_path: Path, sort_by: str) -> None:
    """Store ranks under sort_by in the snapshot file using atomic write.

    Ranks for other metrics already in the file are kept.
    """
    sections = _read_sections(output_path)
    sections[sort_by] = ranks
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=output_path.parent, suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            json.dump(sections, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, output_path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def read_snapshot(path: Path, sort_by: str) -> dict[str, int]:
    """Read the ranks stored under sort_by. Returns {} if missing or invalid."""
    ranks = _read_sections(path).get(sort_by)
    if not isinstance(ranks, dict):
        return {}
    return {str(k): v for k, v in ranks.items() if isinstance(v, int)}

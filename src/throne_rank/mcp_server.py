"""MCP server for throne-rank.

Exposes the streak, achievement, distance and leaderboard calculations as MCP
tools. Run via: python3 -m throne_rank.mcp_server
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from throne_rank.achievements import check_achievements, get_achievement
from throne_rank.config import get_events_file
from throne_rank.events import EventFileError, build_context, load_events
from throne_rank.geo import distance, is_within
from throne_rank.leaderboard import SORT_OPTIONS, build_entries, rank_changes
from throne_rank.streaks import parse_timestamp, summarize_streak

logger = logging.getLogger(__name__)

mcp = FastMCP(name="throne-rank")


def _now(now: str) -> datetime:
    return parse_timestamp(now) if now else datetime.now(tz=timezone.utc)


def _events_path(events_file: str) -> Path:
    return Path(events_file).expanduser() if events_file else get_events_file()


@mcp.tool()
def get_streak(timestamps: list[str], now: str = "") -> dict[str, Any]:
    """Current and longest streak for a list of ISO-8601 log timestamps."""
    try:
        info = summarize_streak(timestamps, _now(now))
    except (TypeError, ValueError) as exc:
        return {"error": f"Invalid timestamp: {exc}"}
    return {
        "current_streak": info.current_streak,
        "longest_streak": info.longest_streak,
        "last_active_date": info.last_active_date,
        "is_active_today": info.is_active_today,
    }


@mcp.tool()
def get_achievements(
    events_file: str = "",
    friend_count: int = 0,
    completed_challenges: int = 0,
    unlocked: list[str] | None = None,
    now: str = "",
) -> dict[str, Any]:
    """Newly earned achievements for the logs in an events file."""
    try:
        events = load_events(_events_path(events_file))
        ctx = build_context(
            events,
            now=_now(now),
            friend_count=friend_count,
            completed_challenges=completed_challenges,
            existing_achievements=unlocked or [],
        )
    except (EventFileError, ValueError) as exc:
        logger.debug("get_achievements failed", exc_info=True)
        return {"error": str(exc)}
    if ctx is None:
        return {"error": "No logs found."}

    result = []
    for slug in check_achievements(ctx):
        achdef = get_achievement(slug)
        result.append({
            "id": slug, "name": achdef.name if achdef else slug,
            "description": achdef.description if achdef else "",
            "rarity": achdef.rarity.value if achdef else "common",
        })
    return {
        "new_achievements": result,
        "current_streak": ctx.current_streak,
        "total_logs": ctx.total_logs,
    }


@mcp.tool()
def get_distance(lat1: float, lng1: float, lat2: float, lng2: float, max_meters: float = 100.0) -> dict[str, Any]:
    """Haversine distance in meters and whether it is within max_meters."""
    return {
        "meters": distance(lat1, lng1, lat2, lng2),
        "within": is_within(lat1, lng1, lat2, lng2, max_meters),
        "max_meters": max_meters,
    }


@mcp.tool()
def get_leaderboard(
    users: list[dict],
    sort_by: str = "streak",
    previous_ranks: dict[str, int] | None = None,
    now: str = "",
) -> dict[str, Any]:
    """Rank users by streak or recent log count.

    users: [{"user_id": ..., "username": ..., "logs": [ISO timestamps]}]
    previous_ranks: user_id -> rank from an earlier call, for rank arrows.
    """
    if sort_by not in SORT_OPTIONS:
        return {"error": f"Invalid sort. Must be one of: {', '.join(SORT_OPTIONS)}"}
    try:
        entries = build_entries([u for u in users if isinstance(u, dict) and "user_id" in u], sort_by, _now(now))
    except (TypeError, ValueError) as exc:
        return {"error": str(exc)}
    changes = rank_changes(previous_ranks or {}, entries)
    return {
        "entries": [
            {
                "user_id": e.user_id,
                "username": e.username,
                "value": e.value,
                "rank": e.rank,
                "change": changes.get(e.user_id),
            }
            for e in entries
        ],
        "count": len(entries),
    }


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()

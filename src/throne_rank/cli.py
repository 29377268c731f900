"""CLI commands for throne-rank."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from throne_rank.achievements import check_achievements
from throne_rank.config import (
    get_buddy_radius,
    get_events_file,
    load_config,
    set_buddy_radius,
    set_events_file,
)
from throne_rank.display import (
    console,
    print_achievements,
    print_buddies,
    print_distance,
    print_error,
    print_leaderboard,
    print_new_achievements,
    print_no_data_message,
    print_streak,
)
from throne_rank.events import EventFileError, LogEvent, build_context, load_events
from throne_rank.geo import distance, find_buddy_events
from throne_rank.leaderboard import (
    SORT_OPTIONS,
    build_entries,
    rank_changes,
    rank_snapshot,
    read_snapshot,
    write_snapshot,
)
from throne_rank.streaks import parse_timestamp, summarize_streak

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="throne-rank",
        description="Streaks, achievements and buddies for your logs",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    streak_p = subparsers.add_parser("streak", help="Show current and longest streak")
    streak_p.add_argument("--events", "-e", default=None, help="Path to events JSON")
    streak_p.add_argument("--now", default=None, help="Reference time (ISO-8601, default: now)")

    ach_p = subparsers.add_parser("achievements", help="Check achievements")
    ach_p.add_argument("--events", "-e", default=None, help="Path to events JSON")
    ach_p.add_argument("--now", default=None, help="Reference time (ISO-8601, default: now)")
    ach_p.add_argument("--friends", type=int, default=0, help="Number of friends")
    ach_p.add_argument("--challenges", type=int, default=0, help="Completed group challenges")
    ach_p.add_argument("--unlocked", nargs="*", default=[], help="Already unlocked slugs")

    dist_p = subparsers.add_parser("distance", help="Distance between two points")
    dist_p.add_argument("lat1", type=float)
    dist_p.add_argument("lng1", type=float)
    dist_p.add_argument("lat2", type=float)
    dist_p.add_argument("lng2", type=float)
    dist_p.add_argument("--max", type=float, default=None, help="Threshold in meters")

    nearby_p = subparsers.add_parser("nearby", help="Find logs with a friend nearby")
    nearby_p.add_argument("--events", "-e", default=None, help="Path to your events JSON")
    nearby_p.add_argument("--friends-file", "-f", required=True, help="Path to friends' events JSON")
    nearby_p.add_argument("--radius", type=float, default=None, help="Radius in meters")

    lb_p = subparsers.add_parser("leaderboard", help="Rank friends")
    lb_p.add_argument("file", help="JSON file with users and their log timestamps")
    lb_p.add_argument("--sort-by", choices=list(SORT_OPTIONS), default="streak")
    lb_p.add_argument("--previous", "-p", default=None, help="Rank snapshot to compare with and update")
    lb_p.add_argument("--now", default=None, help="Reference time (ISO-8601, default: now)")
    lb_p.add_argument("--me", default=None, help="Your user id to highlight")

    cfg_p = subparsers.add_parser("config", help="Show or change settings")
    cfg_sub = cfg_p.add_subparsers(dest="config_command")
    set_events_p = cfg_sub.add_parser("set-events", help="Set the default events file")
    set_events_p.add_argument("path")
    set_radius_p = cfg_sub.add_parser("set-radius", help="Set the buddy radius in meters")
    set_radius_p.add_argument("meters", type=float)
    cfg_sub.add_parser("show", help="Show current settings")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s: %(message)s")
    command = args.command or "streak"

    try:
        if command == "streak":
            do_streak(events_path=getattr(args, "events", None), now=getattr(args, "now", None))
        elif command == "achievements":
            do_achievements(
                events_path=args.events,
                now=args.now,
                friend_count=args.friends,
                completed_challenges=args.challenges,
                unlocked=args.unlocked,
            )
        elif command == "distance":
            do_distance(args.lat1, args.lng1, args.lat2, args.lng2, max_meters=args.max)
        elif command == "nearby":
            do_nearby(events_path=args.events, friends_path=args.friends_file, radius=args.radius)
        elif command == "leaderboard":
            do_leaderboard(
                args.file,
                sort_by=args.sort_by,
                previous=args.previous,
                now=args.now,
                me=args.me,
            )
        elif command == "config":
            do_config(args)
    except (EventFileError, TypeError, ValueError) as exc:
        logger.debug("Command %s failed", command, exc_info=True)
        print_error(str(exc))
        return 1
    return 0


def _resolve_events_path(events_path: str | None) -> Path:
    if events_path:
        return Path(events_path).expanduser()
    return get_events_file()


def _resolve_now(now: str | None) -> datetime:
    if now:
        return parse_timestamp(now)
    return datetime.now(tz=timezone.utc)


def do_streak(events_path: str | None = None, now: str | None = None) -> dict:
    """Show current and longest streak for the events file."""
    events = load_events(_resolve_events_path(events_path))
    if not events:
        print_no_data_message()
        return {"ok": False, "reason": "no_events"}

    info = summarize_streak([e.logged_at for e in events], _resolve_now(now))
    print_streak(info)
    return {
        "ok": True,
        "current_streak": info.current_streak,
        "longest_streak": info.longest_streak,
        "last_active_date": info.last_active_date,
        "is_active_today": info.is_active_today,
    }


def do_achievements(
    events_path: str | None = None,
    now: str | None = None,
    friend_count: int = 0,
    completed_challenges: int = 0,
    unlocked: list[str] | None = None,
) -> dict:
    """Evaluate achievements for the events file and show the catalog."""
    events = load_events(_resolve_events_path(events_path))
    existing = list(unlocked or [])
    ctx = build_context(
        events,
        now=_resolve_now(now),
        friend_count=friend_count,
        completed_challenges=completed_challenges,
        existing_achievements=existing,
    )
    if ctx is None:
        print_no_data_message()
        return {"ok": False, "reason": "no_events"}

    newly = check_achievements(ctx)
    logger.debug("Newly unlocked: %s", newly)
    print_new_achievements(newly)
    print_achievements(newly, existing)
    return {"ok": True, "new_achievements": newly}


def do_distance(lat1: float, lng1: float, lat2: float, lng2: float, max_meters: float | None = None) -> dict:
    meters = distance(lat1, lng1, lat2, lng2)
    print_distance(meters, max_meters)
    result: dict = {"ok": True, "meters": meters}
    if max_meters is not None:
        result["within"] = meters <= max_meters
    return result


def _located(events: list[LogEvent]) -> list[LogEvent]:
    return [e for e in events if e.has_location]


def do_nearby(events_path: str | None = None, friends_path: str = "", radius: float | None = None) -> dict:
    """Flag own located events that have a friend's event within the radius."""
    own = _located(load_events(_resolve_events_path(events_path)))
    friends = _located(load_events(Path(friends_path).expanduser()))
    radius = radius if radius is not None else get_buddy_radius()

    own_points = [
        (e.id or e.logged_at.isoformat(), e.lat, e.lng)
        for e in own
    ]
    matched = find_buddy_events(own_points, [(f.lat, f.lng) for f in friends], radius)
    print_buddies(matched, len(own_points), radius)
    return {"ok": True, "matched": sorted(matched, key=str), "located": len(own_points)}


def _load_users(path: Path) -> list[dict]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise EventFileError(f"Leaderboard file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise EventFileError(f"Invalid JSON in {path}: {exc}") from exc
    if isinstance(raw, dict):
        raw = raw.get("users", [])
    if not isinstance(raw, list):
        raise EventFileError(f"Expected a list of users in {path}")
    return [u for u in raw if isinstance(u, dict) and "user_id" in u]


def do_leaderboard(
    file: str,
    sort_by: str = "streak",
    previous: str | None = None,
    now: str | None = None,
    me: str | None = None,
) -> dict:
    """Rank users and show movement against the previous snapshot, then update it."""
    users = _load_users(Path(file).expanduser())
    entries = build_entries(users, sort_by, _resolve_now(now))

    changes: dict = {}
    if previous:
        snapshot_path = Path(previous).expanduser()
        changes = rank_changes(read_snapshot(snapshot_path, sort_by), entries)
        write_snapshot(rank_snapshot(entries), snapshot_path, sort_by)

    print_leaderboard(entries, sort_by, changes=changes, highlight_user=me)
    return {"ok": True, "entries": entries, "changes": changes}


def do_config(args: argparse.Namespace) -> dict:
    cmd = getattr(args, "config_command", None)
    if cmd == "set-events":
        path = Path(args.path).expanduser().resolve()
        set_events_file(path)
        console.print(f"Events file set to [bold]{path}[/]")
        return {"ok": True, "events_file": str(path)}
    if cmd == "set-radius":
        set_buddy_radius(args.meters)
        console.print(f"Buddy radius set to [bold]{args.meters:g} m[/]")
        return {"ok": True, "buddy_radius_m": args.meters}
    config = load_config()
    console.print_json(json.dumps(config))
    return {"ok": True, "config": config}


if __name__ == "__main__":
    sys.exit(main())

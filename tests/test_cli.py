"""Tests for CLI commands and display helpers."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from throne_rank.cli import (
    build_parser,
    do_achievements,
    do_distance,
    do_leaderboard,
    do_nearby,
    do_streak,
    main,
)
from throne_rank.display import format_distance

NOW = "2026-02-21T14:00:00Z"


@pytest.fixture
def events_file(tmp_path):
    """Three consecutive days of logs, the latest at 2 AM with a quick visit."""
    rows = [
        {"id": "e1", "logged_at": "2026-02-21T02:00:00Z", "bristol_scale": 4,
         "duration_seconds": 30, "lat": 48.8584, "lng": 2.2945},
        {"id": "e2", "logged_at": "2026-02-20T08:00:00Z", "bristol_scale": 3,
         "duration_seconds": 200, "lat": 40.7128, "lng": -74.0060},
        {"id": "e3", "logged_at": "2026-02-19T08:00:00Z", "bristol_scale": 5,
         "duration_seconds": 200},
    ]
    path = tmp_path / "logs.json"
    path.write_text(json.dumps(rows), encoding="utf-8")
    return path


# ── Argument Parsing ──────────────────────────────────────────────────────────


class TestArgumentParsing:
    def test_no_args_defaults_to_none_command(self):
        args = build_parser().parse_args([])
        assert args.command is None

    def test_streak_command(self):
        args = build_parser().parse_args(["streak", "--events", "x.json", "--now", NOW])
        assert args.command == "streak"
        assert args.events == "x.json"
        assert args.now == NOW

    def test_achievements_command(self):
        args = build_parser().parse_args(["achievements", "--friends", "5", "--unlocked", "first_drop", "regular"])
        assert args.friends == 5
        assert args.unlocked == ["first_drop", "regular"]

    def test_distance_command(self):
        args = build_parser().parse_args(["distance", "1", "2", "3", "4", "--max", "100"])
        assert (args.lat1, args.lng1, args.lat2, args.lng2) == (1.0, 2.0, 3.0, 4.0)
        assert args.max == 100.0

    def test_distance_accepts_negative_coordinates(self):
        args = build_parser().parse_args(["distance", "-33.9", "18.4", "-34.0", "18.5"])
        assert args.lat1 == -33.9

    def test_leaderboard_sort_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["leaderboard", "users.json", "--sort-by", "yearly"])

    def test_invalid_command_raises(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["nonexistent"])


# ── format_distance ───────────────────────────────────────────────────────────


class TestFormatDistance:
    def test_meters(self):
        assert format_distance(87.4) == "87 m"

    def test_kilometers(self):
        assert format_distance(2345.6) == "2.35 km"

    def test_large(self):
        assert format_distance(5_837_000) == "5,837 km"

    def test_nan(self):
        assert format_distance(float("nan")) == "n/a"


# ── Commands ──────────────────────────────────────────────────────────────────


class TestDoStreak:
    def test_reports_streak(self, events_file):
        result = do_streak(events_path=str(events_file), now=NOW)
        assert result["ok"] is True
        assert result["current_streak"] == 3
        assert result["longest_streak"] == 3
        assert result["is_active_today"] is True

    def test_no_events(self, tmp_path):
        result = do_streak(events_path=str(tmp_path / "missing.json"), now=NOW)
        assert result == {"ok": False, "reason": "no_events"}


class TestDoAchievements:
    def test_new_achievements(self, events_file):
        result = do_achievements(events_path=str(events_file), now=NOW)
        assert result["ok"] is True
        assert result["new_achievements"] == ["first_drop", "speed_demon", "night_owl"]

    def test_unlocked_are_skipped(self, events_file):
        result = do_achievements(events_path=str(events_file), now=NOW, unlocked=["first_drop"], friend_count=5)
        assert "first_drop" not in result["new_achievements"]
        assert "social_butterfly" in result["new_achievements"]

    def test_no_events(self, tmp_path):
        result = do_achievements(events_path=str(tmp_path / "missing.json"), now=NOW)
        assert result["ok"] is False


class TestDoDistance:
    def test_without_threshold(self):
        result = do_distance(48.8584, 2.2945, 48.8584, 2.2945)
        assert result == {"ok": True, "meters": 0.0}

    def test_with_threshold(self):
        result = do_distance(48.8584, 2.2945, 48.8592, 2.2945, max_meters=100)
        assert result["within"] is True


class TestDoNearby:
    def test_matches_friend_near_eiffel(self, events_file, tmp_path):
        friends = tmp_path / "friends.json"
        friends.write_text(json.dumps([
            {"logged_at": "2026-02-21T09:00:00Z", "lat": 48.8588, "lng": 2.2946},
            {"logged_at": "2026-02-21T09:00:00Z"},
        ]), encoding="utf-8")
        result = do_nearby(events_path=str(events_file), friends_path=str(friends), radius=100)
        assert result["matched"] == ["e1"]
        assert result["located"] == 2

    def test_uses_configured_radius(self, events_file, tmp_path):
        friends = tmp_path / "friends.json"
        friends.write_text(json.dumps([{"logged_at": NOW, "lat": 48.8700, "lng": 2.2945}]), encoding="utf-8")
        with patch("throne_rank.cli.get_buddy_radius", return_value=5000.0):
            result = do_nearby(events_path=str(events_file), friends_path=str(friends))
        assert result["matched"] == ["e1"]


class TestDoLeaderboard:
    def _users_file(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text(json.dumps({"users": [
            {"user_id": "a", "username": "alice", "logs": ["2026-02-21T08:00:00Z"]},
            {"user_id": "b", "username": "bob", "logs": ["2026-02-21T08:00:00Z", "2026-02-20T08:00:00Z"]},
        ]}), encoding="utf-8")
        return path

    def test_ranks_users(self, tmp_path):
        result = do_leaderboard(str(self._users_file(tmp_path)), now=NOW)
        assert [e.username for e in result["entries"]] == ["bob", "alice"]
        assert result["changes"] == {}

    def test_previous_snapshot_compared_and_updated(self, tmp_path):
        snapshot = tmp_path / "ranks.json"
        snapshot.write_text('{"streak": {"a": 1, "b": 2}}', encoding="utf-8")
        result = do_leaderboard(str(self._users_file(tmp_path)), previous=str(snapshot), now=NOW)
        assert result["changes"] == {"b": "up", "a": "down"}
        assert json.loads(snapshot.read_text()) == {"streak": {"b": 1, "a": 2}}

    def test_snapshot_is_per_metric(self, tmp_path):
        snapshot = tmp_path / "ranks.json"
        snapshot.write_text('{"streak": {"a": 1, "b": 2}}', encoding="utf-8")
        result = do_leaderboard(str(self._users_file(tmp_path)), sort_by="weekly", previous=str(snapshot), now=NOW)
        assert result["changes"] == {"b": None, "a": None}
        assert json.loads(snapshot.read_text()) == {
            "streak": {"a": 1, "b": 2},
            "weekly": {"b": 1, "a": 2},
        }


class TestMain:
    def test_bad_events_file_returns_1(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops", encoding="utf-8")
        assert main(["streak", "--events", str(path)]) == 1

    def test_missing_leaderboard_file_returns_1(self, tmp_path):
        assert main(["leaderboard", str(tmp_path / "missing.json")]) == 1

    def test_distance_returns_0(self):
        assert main(["distance", "0", "0", "0", "1"]) == 0

    def test_config_set_radius(self):
        with patch("throne_rank.cli.set_buddy_radius") as mock_set:
            assert main(["config", "set-radius", "250"]) == 0
        mock_set.assert_called_once_with(250.0)

    def test_config_rejects_non_positive_radius(self):
        assert main(["config", "set-radius", "0"]) == 1

    def test_null_timestamp_in_leaderboard_returns_1(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text(json.dumps([{"user_id": "a", "logs": [None]}]), encoding="utf-8")
        assert main(["leaderboard", str(path), "--sort-by", "weekly", "--now", NOW]) == 1

    def test_null_logs_in_leaderboard_returns_0(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text(json.dumps([{"user_id": "a", "logs": None}]), encoding="utf-8")
        assert main(["leaderboard", str(path), "--now", NOW]) == 0

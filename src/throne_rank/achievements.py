"""Achievement definitions and checking for throne-rank.

Each achievement is a predicate over an AchievementContext snapshot built by
the caller. The engine keeps no state between calls.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType

from throne_rank.streaks import parse_timestamp, to_calendar_day


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass(frozen=True)
class LatestLog:
    bristol_scale: int
    duration_seconds: int
    logged_at: datetime | str
    lat: float | None = None
    lng: float | None = None


@dataclass(frozen=True)
class AchievementContext:
    total_logs: int
    current_streak: int
    latest_log: LatestLog
    all_bristol_types: Sequence[int] = ()  # distinct values ever logged
    friend_count: int = 0
    completed_challenges: int = 0
    log_times: Sequence[datetime | str] = ()  # most recent first
    unique_locations: int = 0
    existing_achievements: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class AchievementDef:
    id: str
    name: str
    description: str
    rarity: Rarity


AchievementCheck = Callable[[AchievementContext], bool]

HABIT_WINDOW_MINUTES = 30
HABIT_SAMPLE_SIZE = 7
_MINUTES_PER_DAY = 1440
_HALF_DAY_MINUTES = 720


def _perfect_week(ctx: AchievementContext) -> bool:
    """Every day Monday-Sunday of the latest log's UTC week has a log."""
    log_day = to_calendar_day(ctx.latest_log.logged_at)
    monday = log_day - timedelta(days=log_day.weekday())
    week_days = {monday + timedelta(days=i) for i in range(7)}
    logged_days = {to_calendar_day(t) for t in ctx.log_times}
    return week_days <= logged_days


def _night_owl(ctx: AchievementContext) -> bool:
    hour = parse_timestamp(ctx.latest_log.logged_at).hour
    return 0 <= hour < 5


def _within_window(minutes: list[int]) -> bool:
    return max(minutes) - min(minutes) <= HABIT_WINDOW_MINUTES


def _creature_of_habit(ctx: AchievementContext) -> bool:
    """The last seven logs all fall within a 30 minute window of the day.

    The +12h shift catches windows that straddle midnight. Windows that
    straddle noon are not caught.
    """
    if len(ctx.log_times) < HABIT_SAMPLE_SIZE:
        return False

    minutes_of_day = []
    for t in list(ctx.log_times)[:HABIT_SAMPLE_SIZE]:
        ts = parse_timestamp(t)
        minutes_of_day.append(ts.hour * 60 + ts.minute)

    if _within_window(minutes_of_day):
        return True
    shifted = [(m + _HALF_DAY_MINUTES) % _MINUTES_PER_DAY for m in minutes_of_day]
    return _within_window(shifted)


ACHIEVEMENT_CHECKS: MappingProxyType[str, AchievementCheck] = MappingProxyType({
    "first_drop": lambda ctx: ctx.total_logs >= 1,
    "regular": lambda ctx: ctx.current_streak >= 7,
    "iron_bowel": lambda ctx: ctx.current_streak >= 30,
    "centurion": lambda ctx: ctx.current_streak >= 100,
    "speed_demon": lambda ctx: ctx.latest_log.duration_seconds < 60,
    "marathon_sitter": lambda ctx: ctx.latest_log.duration_seconds > 1200,
    "perfect_week": _perfect_week,
    "variety_pack": lambda ctx: len(ctx.all_bristol_types) >= 7,
    "social_butterfly": lambda ctx: ctx.friend_count >= 5,
    "challenger": lambda ctx: ctx.completed_challenges >= 1,
    "night_owl": _night_owl,
    "creature_of_habit": _creature_of_habit,
    "globe_trotter": lambda ctx: ctx.unique_locations >= 3,
})

ACHIEVEMENT_SLUGS: tuple[str, ...] = tuple(ACHIEVEMENT_CHECKS)


ACHIEVEMENTS: list[AchievementDef] = [
    AchievementDef(
        id="first_drop",
        name="First Drop",
        description="Log your first visit",
        rarity=Rarity.COMMON,
    ),
    AchievementDef(
        id="regular",
        name="Regular",
        description="Keep a 7-day streak",
        rarity=Rarity.COMMON,
    ),
    AchievementDef(
        id="iron_bowel",
        name="Iron Bowel",
        description="Keep a 30-day streak",
        rarity=Rarity.RARE,
    ),
    AchievementDef(
        id="centurion",
        name="Centurion",
        description="Keep a 100-day streak",
        rarity=Rarity.LEGENDARY,
    ),
    AchievementDef(
        id="speed_demon",
        name="Speed Demon",
        description="Finish in under a minute",
        rarity=Rarity.COMMON,
    ),
    AchievementDef(
        id="marathon_sitter",
        name="Marathon Sitter",
        description="Sit for more than 20 minutes",
        rarity=Rarity.COMMON,
    ),
    AchievementDef(
        id="perfect_week",
        name="Perfect Week",
        description="Log every day from Monday to Sunday",
        rarity=Rarity.RARE,
    ),
    AchievementDef(
        id="variety_pack",
        name="Variety Pack",
        description="Log all 7 Bristol types",
        rarity=Rarity.EPIC,
    ),
    AchievementDef(
        id="social_butterfly",
        name="Social Butterfly",
        description="Make 5 friends",
        rarity=Rarity.RARE,
    ),
    AchievementDef(
        id="challenger",
        name="Challenger",
        description="Complete a group challenge",
        rarity=Rarity.RARE,
    ),
    AchievementDef(
        id="night_owl",
        name="Night Owl",
        description="Log between midnight and 5 AM (UTC)",
        rarity=Rarity.COMMON,
    ),
    AchievementDef(
        id="creature_of_habit",
        name="Creature of Habit",
        description="Log 7 times within the same 30 minute window of the day",
        rarity=Rarity.EPIC,
    ),
    AchievementDef(
        id="globe_trotter",
        name="Globe Trotter",
        description="Log from 3 different places",
        rarity=Rarity.RARE,
    ),
]

_ACHIEVEMENTS_BY_ID: MappingProxyType[str, AchievementDef] = MappingProxyType(
    {a.id: a for a in ACHIEVEMENTS}
)


def get_achievement(slug: str) -> AchievementDef | None:
    """Look up display metadata for a slug."""
    return _ACHIEVEMENTS_BY_ID.get(slug)


def check_achievements(ctx: AchievementContext) -> list[str]:
    """Return slugs whose predicate holds and that are not already unlocked.

    Results follow catalog order.
    """
    existing = set(ctx.existing_achievements)
    return [
        slug
        for slug, check in ACHIEVEMENT_CHECKS.items()
        if slug not in existing and check(ctx)
    ]


def get_newly_unlocked(previous: Sequence[str], current: Sequence[str]) -> list[str]:
    """Compare previous and current unlocked slugs, return the new ones."""
    prev_unlocked = set(previous)
    return [slug for slug in current if slug not in prev_unlocked]

"""Rich terminal display for throne-rank."""

from __future__ import annotations

import math

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from throne_rank.achievements import ACHIEVEMENTS, get_achievement
from throne_rank.leaderboard import LeaderboardEntry, rank_display
from throne_rank.streaks import StreakInfo, streak_tier

console = Console()

_RARITY_COLORS: dict[str, str] = {
    "common": "white",
    "rare": "blue",
    "epic": "magenta",
    "legendary": "yellow",
}

_CHANGE_ARROWS: dict[str, str] = {
    "up": "[green]↑[/]",
    "down": "[red]↓[/]",
}


def format_distance(meters: float) -> str:
    """Format a distance: 87.4 -> '87 m', 2345.6 -> '2.35 km'."""
    if math.isnan(meters):
        return "n/a"
    if meters < 1000:
        return f"{meters:.0f} m"
    if meters < 100_000:
        return f"{meters / 1000:.2f} km"
    return f"{meters / 1000:,.0f} km"


def _fires(streak: int) -> str:
    tier = streak_tier(streak)
    if tier is None:
        return ""
    return "\U0001f525" * tier["fires"]


def print_streak(info: StreakInfo) -> None:
    """Print current and longest streak in a panel."""
    tier = streak_tier(info.current_streak)
    label = tier["label"] if tier else "No active streak"
    fires = _fires(info.current_streak)

    lines: list[str] = []
    lines.append("")
    lines.append(f"  [bold]Current Streak:[/] {info.current_streak} days {fires}")
    lines.append(f"  {label}")
    lines.append(f"  [bold]Longest Streak:[/] {info.longest_streak} days")
    lines.append(f"  Last active:    {info.last_active_date or 'never'}")
    if info.current_streak and not info.is_active_today:
        lines.append("")
        lines.append("  [yellow]Log today to keep your streak alive![/]")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]THRONE RANK[/]",
        box=box.ROUNDED,
        border_style="dark_orange3",
        width=50,
    )
    console.print(panel)


def print_achievements(newly_unlocked: list[str], existing: list[str]) -> None:
    """Print the full catalog marking unlocked and newly unlocked badges."""
    new_set = set(newly_unlocked)
    unlocked_set = set(existing) | new_set

    table = Table(
        title="Achievements",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("", width=2)
    table.add_column("Achievement", min_width=20)
    table.add_column("Rarity", width=10)
    table.add_column("Status", width=10)

    for ach in ACHIEVEMENTS:
        rarity = ach.rarity.value
        color = _RARITY_COLORS.get(rarity, "white")
        if ach.id in new_set:
            icon, status = "\U0001f3c6", "[bold green]NEW[/]"
        elif ach.id in unlocked_set:
            icon, status = "✅", "unlocked"
        else:
            icon, status = "⏳", "[grey50]locked[/]"
        table.add_row(
            icon,
            f"[bold]{ach.name}[/]\n{ach.description}",
            f"[{color}]{rarity.upper()}[/{color}]",
            status,
        )

    console.print(table)


def print_new_achievements(slugs: list[str]) -> None:
    """Print a celebration panel for newly unlocked achievements."""
    if not slugs:
        console.print("[grey50]No new achievements.[/]")
        return
    lines: list[str] = [""]
    for slug in slugs:
        ach = get_achievement(slug)
        name = ach.name if ach else slug
        lines.append(f"  \U0001f3c6 [bold]{name}[/]")
    lines.append("")
    panel = Panel(
        "\n".join(lines),
        title="[bold]Achievement Unlocked[/]",
        box=box.ROUNDED,
        border_style="green",
        width=50,
    )
    console.print(panel)


def print_distance(meters: float, max_meters: float | None = None) -> None:
    """Print a distance and, when given a threshold, whether it is within it."""
    text = f"Distance: [bold]{format_distance(meters)}[/]"
    if max_meters is not None:
        within = meters <= max_meters
        verdict = "[green]within[/]" if within else "[red]outside[/]"
        text += f"  ({verdict} {format_distance(max_meters)})"
    console.print(text)


def print_buddies(matched_ids: set, total_located: int, radius: float) -> None:
    """Print how many located events had a friend nearby."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"  Located logs:   {total_located}")
    lines.append(f"  With a buddy:   {len(matched_ids)} (within {format_distance(radius)})")
    for event_id in sorted(matched_ids, key=str):
        lines.append(f"  \U0001f46f {event_id}")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]Buddies Nearby[/]",
        box=box.ROUNDED,
        border_style="cyan",
        width=50,
    )
    console.print(panel)


def print_leaderboard(
    entries: list[LeaderboardEntry],
    sort_by: str,
    changes: dict[str, str | None] | None = None,
    highlight_user: str | None = None,
) -> None:
    """Print ranked friends with rank-change arrows."""
    changes = changes or {}
    unit = "days" if sort_by == "streak" else "logs"

    table = Table(
        title=f"Leaderboard ({sort_by})",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("Rank", width=6)
    table.add_column("User", min_width=16)
    table.add_column("Value", justify="right")

    for entry in entries:
        arrow = _CHANGE_ARROWS.get(changes.get(entry.user_id) or "", "")
        name = entry.username
        if highlight_user and entry.user_id == highlight_user:
            name = f"[bold yellow]{name}[/]"
        table.add_row(f"{rank_display(entry.rank)} {arrow}".strip(), name, f"{entry.value} {unit}")

    console.print(table)


def print_no_data_message() -> None:
    """Print message when no events are available."""
    panel = Panel(
        "\n  No logs found. Point [bold]throne-rank config set-events[/] at your logs file.\n",
        title="[bold]THRONE RANK[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=50,
    )
    console.print(panel)


def print_error(message: str) -> None:
    console.print(f"[red]{message}[/]")

"""Configuration file management for throne-rank.

Reads and writes ~/.throne-rank/config.json for caller settings such as the
default events file and the buddy radius.
"""
from __future__ import annotations

import json
from pathlib import Path

from throne_rank.geo import BUDDY_RADIUS_METERS

DEFAULT_CONFIG_PATH: Path = Path.home() / ".throne-rank" / "config.json"
DEFAULT_EVENTS_PATH: Path = Path.home() / ".throne-rank" / "logs.json"


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def get_events_file(config_path: Path | None = None) -> Path:
    """Return the configured events file, or the default location."""
    raw = load_config(config_path).get("events_file")
    if raw:
        return Path(raw)
    return DEFAULT_EVENTS_PATH


def set_events_file(path: Path, config_path: Path | None = None) -> None:
    config = load_config(config_path)
    config["events_file"] = str(path)
    save_config(config, config_path)


def get_buddy_radius(config_path: Path | None = None) -> float:
    """Return the buddy radius in meters, falling back to the default."""
    raw = load_config(config_path).get("buddy_radius_m")
    try:
        radius = float(raw)
    except (TypeError, ValueError):
        return BUDDY_RADIUS_METERS
    return radius if radius > 0 else BUDDY_RADIUS_METERS


def set_buddy_radius(meters: float, config_path: Path | None = None) -> None:
    if meters <= 0:
        raise ValueError("Buddy radius must be positive")
    config = load_config(config_path)
    config["buddy_radius_m"] = meters
    save_config(config, config_path)

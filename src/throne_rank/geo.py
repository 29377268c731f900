"""Geographic helpers: haversine distance and proximity checks.

Pure numeric functions. Invalid coordinates propagate as NaN.
"""

from __future__ import annotations

import math
from collections.abc import Hashable, Iterable

EARTH_RADIUS_M = 6_371_000
BUDDY_RADIUS_METERS = 100.0


def distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def is_within(lat1: float, lng1: float, lat2: float, lng2: float, max_meters: float) -> bool:
    """True if the two points are at most max_meters apart."""
    return distance(lat1, lng1, lat2, lng2) <= max_meters


def find_buddy_events(
    own_points: Iterable[tuple[Hashable, float, float]],
    friend_points: Iterable[tuple[float, float]],
    max_meters: float = BUDDY_RADIUS_METERS,
) -> set:
    """Return ids of own events that have a friend's event within max_meters.

    own_points: (event_id, lat, lng) tuples
    friend_points: (lat, lng) tuples
    """
    friends = list(friend_points)
    matched: set = set()
    for event_id, lat, lng in own_points:
        for f_lat, f_lng in friends:
            if is_within(lat, lng, f_lat, f_lng, max_meters):
                matched.add(event_id)
                break
    return matched


def count_unique_locations(points: Iterable[tuple[float, float]], precision: int = 1) -> int:
    """Count distinct places after rounding coordinates to `precision` decimals.

    One decimal of latitude is roughly 11 km, which approximates a city area.
    """
    return len({(round(lat, precision), round(lng, precision)) for lat, lng in points})

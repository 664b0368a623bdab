"""
GPS Distance Helpers
====================

Great-circle distance and implied speed between two fixes.
Uses Haversine formula for accurate distance calculation.

Usage:
    meters = calculate_distance(41.0, 29.0, 41.001, 29.0)
    kmh = implied_speed_kmh(meters, seconds=10.0)
"""

from __future__ import annotations

import math

EARTH_RADIUS_M = 6371000  # Earth radius in meters


def calculate_distance(
    lat1: float, lon1: float, lat2: float, lon2: float
) -> float:
    """
    Calculate distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def implied_speed_kmh(distance_m: float, seconds: float) -> float | None:
    """
    Speed implied by covering distance_m in the given time.

    Returns:
        Speed in km/h, or None when no time has passed
    """
    if seconds <= 0:
        return None
    return (distance_m / 1000.0) / (seconds / 3600.0)


def distance_for_speed_km(speed_kmh: float, seconds: float) -> float:
    """Distance in km covered at speed_kmh over the given time."""
    if seconds <= 0 or speed_kmh <= 0:
        return 0.0
    return speed_kmh * seconds / 3600.0

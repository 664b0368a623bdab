"""GPS infrastructure - sample sources and distance helpers."""

from .distance import calculate_distance, distance_for_speed_km, implied_speed_kmh
from .gpsd_client import AsyncGPSClient, GPSConfig, MockGPSClient
from .replay import load_fixes

__all__ = [
    "AsyncGPSClient",
    "GPSConfig",
    "MockGPSClient",
    "calculate_distance",
    "distance_for_speed_km",
    "implied_speed_kmh",
    "load_fixes",
]

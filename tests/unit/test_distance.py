"""
Distance Unit Tests
===================

Tests for the great-circle helpers.
"""

import pytest

from triptrack.infrastructure.gps.distance import (
    calculate_distance,
    distance_for_speed_km,
    implied_speed_kmh,
)


class TestCalculateDistance:
    """Tests for calculate_distance function."""

    def test_same_point_zero(self):
        assert calculate_distance(41.0, 29.0, 41.0, 29.0) == 0.0

    def test_one_thousandth_degree_north(self):
        """~111 meters per 0.001 degree of latitude."""
        distance = calculate_distance(41.0, 29.0, 41.001, 29.0)
        assert 110 < distance < 112

    def test_symmetric(self):
        a = calculate_distance(41.0082, 28.9784, 39.9334, 32.8597)
        b = calculate_distance(39.9334, 32.8597, 41.0082, 28.9784)
        assert a == pytest.approx(b)

    def test_istanbul_to_ankara(self):
        """Known city distance, roughly 350 km."""
        distance = calculate_distance(41.0082, 28.9784, 39.9334, 32.8597)
        assert 340_000 < distance < 360_000


class TestSpeedHelpers:

    def test_implied_speed(self):
        assert implied_speed_kmh(1000.0, 60.0) == pytest.approx(60.0)

    def test_implied_speed_without_time(self):
        assert implied_speed_kmh(1000.0, 0.0) is None
        assert implied_speed_kmh(1000.0, -3.0) is None

    def test_distance_for_speed(self):
        assert distance_for_speed_km(60.0, 6.0) == pytest.approx(0.1)

    def test_distance_for_speed_never_negative(self):
        assert distance_for_speed_km(0.0, 6.0) == 0.0
        assert distance_for_speed_km(60.0, -1.0) == 0.0

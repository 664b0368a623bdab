"""Shared fixtures: fixes laid out along a meridian so distances are exact."""

import math
from datetime import UTC, datetime, timedelta

import pytest

from triptrack.core.pipeline import FixPipeline
from triptrack.domain.models import RawFix

T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=UTC)
BASE_LAT = 41.0
BASE_LON = 29.0
KM_PER_DEG_LAT = math.pi * 6371.0 / 180.0


def fix_at(
    seconds: float,
    km: float = 0.0,
    accuracy: float | None = 5.0,
    speed: float | None = None,
    start: datetime = T0,
) -> RawFix:
    """Fix `km` north of the base point, `seconds` after start."""
    return RawFix(
        latitude=BASE_LAT + km / KM_PER_DEG_LAT,
        longitude=BASE_LON,
        accuracy_m=accuracy,
        speed_mps=speed,
        timestamp=start + timedelta(seconds=seconds),
    )


@pytest.fixture
def make_fix():
    return fix_at


@pytest.fixture
def warmed_session():
    """Pipeline after a full warm-up: 10 fixes, 1 km per minute (60 km/h)."""
    pipeline = FixPipeline()
    state = pipeline.new_session()
    records = [
        pipeline.process(state, fix_at(i * 60, km=float(i), speed=16.7))
        for i in range(10)
    ]
    return pipeline, state, records

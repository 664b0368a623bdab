"""
Dead-Reckoning Watchdog
=======================

Time-driven check that keeps the trip totals moving while no fix
arrives. Evaluation is a pure function of (state, now); the caller
applies the returned result under the same lock the fix pipeline uses.

Usage:
    result = evaluate_watchdog(state, now, config.watchdog, config.tracking)
    if result is not None:
        result.apply(state)
        history.append(result.record)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ..config import TrackingConfig, WatchdogConfig
from ..domain.models import Record, RecordKind, TrackingPhase
from ..infrastructure.gps.distance import distance_for_speed_km
from .session import SessionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchdogResult:
    """Virtual record plus the state delta that goes with it."""

    record: Record
    added_distance_km: float
    gap_s: float
    processed_at: datetime

    def apply(self, state: SessionState) -> None:
        state.display_distance_km += self.added_distance_km
        state.display_elapsed_s += self.gap_s
        state.covered_since_known_s += self.gap_s
        state.last_processed_time = self.processed_at
        state.last_speed_mps = self.record.speed_mps
        state.last_elapsed = self.record.elapsed
        state.dead_reckoning = True
        logger.info(
            "No fix for %.1f s, dead reckoning %.3f km",
            self.gap_s,
            self.added_distance_km,
        )


def effective_speed_mps(state: SessionState) -> float:
    """Last recorded speed if positive, else the average speed in m/s."""
    if state.last_speed_mps is not None and state.last_speed_mps > 0:
        return state.last_speed_mps
    if state.last_known_average_kmh is not None and state.last_known_average_kmh > 0:
        return state.last_known_average_kmh / 3.6
    return 0.0


def evaluate_watchdog(
    state: SessionState,
    now: datetime,
    config: WatchdogConfig | None = None,
    tracking: TrackingConfig | None = None,
) -> WatchdogResult | None:
    """
    Decide whether a virtual record is due at `now`.

    Returns:
        WatchdogResult to apply, or None when nothing should happen
    """
    config = config or WatchdogConfig()
    tracking = tracking or TrackingConfig()

    if not state.started or state.phase is not TrackingPhase.STEADY:
        return None

    # A stopped vehicle should not accrue phantom distance
    if effective_speed_mps(state) < tracking.moving_speed_mps:
        return None

    gap_s = (now - state.last_processed_time).total_seconds()
    if gap_s < config.timeout_s:
        return None

    average_kmh = state.last_known_average_kmh
    if average_kmh is None or average_kmh <= 0:
        return None

    added_km = distance_for_speed_km(average_kmh, gap_s)
    elapsed = max(now - state.start_time, state.last_elapsed)
    record = Record(
        latitude=state.last_known_lat,
        longitude=state.last_known_lon,
        timestamp=now,
        kind=RecordKind.VIRTUAL,
        speed_mps=average_kmh / 3.6,
        display_distance_km=state.display_distance_km + added_km,
        average_distance_km=state.average_distance_km,
        elapsed=elapsed,
        good_elapsed_s=state.average_elapsed_s,
        phase=TrackingPhase.STEADY,
        signal_good=False,
    )
    return WatchdogResult(
        record=record,
        added_distance_km=added_km,
        gap_s=gap_s,
        processed_at=now,
    )

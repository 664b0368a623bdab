"""
Fix Pipeline
============

Turns accepted fixes into history records while maintaining the
session totals.

Per fix: throttle gate -> plausibility guard + signal quality ->
warm-up calibrator (first N accepted fixes) or steady-state aggregator
-> record.

Warm-up builds a baseline average speed as the arithmetic mean of
implied interval speeds, skipping the settling intervals right after
the first fix. When the last warm-up fix is processed the good-signal
totals are seeded from the display totals and the session switches to
a distance-over-time average restricted to good-signal intervals.

Usage:
    pipeline = FixPipeline(config.tracking)
    state = pipeline.new_session()

    record = pipeline.process(state, fix)
    if record is not None:
        history.append(record)
"""

from __future__ import annotations

import logging

from ..config import TrackingConfig
from ..domain.models import RawFix, Record, SignalIssue, TrackingPhase
from ..infrastructure.gps.distance import (
    calculate_distance,
    distance_for_speed_km,
    implied_speed_kmh,
)
from .hysteresis import RecoveryHysteresis
from .quality import PlausibilityGuard, SignalQualityClassifier
from .session import SessionState
from .throttle import ThrottleGate

logger = logging.getLogger(__name__)


class FixPipeline:
    """Stateless processor; all mutable data lives in SessionState."""

    def __init__(self, config: TrackingConfig | None = None) -> None:
        self.config = config or TrackingConfig()
        self.classifier = SignalQualityClassifier(
            warmup_accuracy_m=self.config.warmup_accuracy_m,
            slow_accuracy_m=self.config.slow_accuracy_m,
            moving_accuracy_m=self.config.moving_accuracy_m,
            moving_speed_mps=self.config.moving_speed_mps,
        )
        self.guard = PlausibilityGuard(max_speed_kmh=self.config.max_plausible_speed_kmh)

    def new_session(self) -> SessionState:
        return SessionState(
            throttle=ThrottleGate(min_interval_s=self.config.min_fix_interval_s),
            hysteresis=RecoveryHysteresis(required_good=self.config.recovery_good_fixes),
        )

    def process(self, state: SessionState, fix: RawFix) -> Record | None:
        """
        Process one fix.

        Returns:
            The record to append, or None when the throttle dropped the fix
        """
        if not state.throttle.allows(fix.timestamp):
            logger.debug("Fix at %s throttled", fix.timestamp.isoformat())
            return None

        state.throttle.accept(fix.timestamp)
        state.fault = None
        state.dead_reckoning = False

        if not state.started:
            return self._seed(state, fix)

        phase = state.phase
        prior_fixes = state.accepted_count
        state.accepted_count += 1

        dt = max(0.0, (fix.timestamp - state.last_processed_time).total_seconds())
        geo_dt = (fix.timestamp - state.last_known_time).total_seconds()
        distance_m = calculate_distance(
            state.last_known_lat, state.last_known_lon, fix.latitude, fix.longitude
        )
        speed_kmh = implied_speed_kmh(distance_m, geo_dt)
        # Only the span not already credited by estimates; jumps credit nothing
        credited_s = max(0.0, geo_dt - state.covered_since_known_s)
        credited_km = distance_m / 1000.0 * credited_s / geo_dt if geo_dt > 0 else 0.0

        good = self.classifier.is_good(fix.accuracy_m, phase, fix.speed_mps)
        jump = self.guard.is_jump(speed_kmh)

        if jump:
            logger.warning(
                "GPS jump rejected: %.0f m in %.1f s (%.0f km/h)",
                distance_m,
                geo_dt,
                speed_kmh,
            )
            state.hysteresis.record_bad(SignalIssue.GPS_JUMP)
        elif phase is TrackingPhase.WARMUP:
            self._warmup_step(
                state, fix, good, speed_kmh, credited_km, credited_s, dt, prior_fixes
            )
        else:
            self._steady_step(state, fix, good, credited_km, credited_s, dt)

        if phase is TrackingPhase.STEADY:
            state.refresh_average()

        state.last_processed_time = fix.timestamp
        state.last_speed_mps = fix.speed_mps
        warmup_average = state.baseline_kmh if phase is TrackingPhase.WARMUP else None

        if phase is TrackingPhase.WARMUP and state.accepted_count >= self.config.warmup_fixes:
            state.freeze_baseline()
            logger.info(
                "Warm-up complete after %d fixes: baseline %s km/h, %.3f km",
                state.accepted_count,
                f"{state.last_known_average_kmh:.2f}" if state.last_known_average_kmh else "-",
                state.display_distance_km,
            )

        return self._make_record(
            state, fix, phase, signal_good=good and not jump, jump=jump,
            warmup_average=warmup_average,
        )

    def _seed(self, state: SessionState, fix: RawFix) -> Record:
        """First fix: no predecessor, only start time and position."""
        state.start_time = fix.timestamp
        state.last_processed_time = fix.timestamp
        state.last_speed_mps = fix.speed_mps
        state.accepted_count = 1
        state.move_to(fix)
        logger.info("Tracking session started at %s", fix.timestamp.isoformat())

        good = self.classifier.is_good(fix.accuracy_m, state.phase, fix.speed_mps)
        return self._make_record(
            state, fix, state.phase, signal_good=good, jump=False, warmup_average=None
        )

    def _warmup_step(
        self,
        state: SessionState,
        fix: RawFix,
        good: bool,
        speed_kmh: float | None,
        credited_km: float,
        credited_s: float,
        dt: float,
        prior_fixes: int,
    ) -> None:
        if good:
            state.display_distance_km += credited_km
            state.display_elapsed_s += credited_s
            if speed_kmh is not None and prior_fixes >= self.config.warmup_settling_fixes:
                state.warmup_samples.append(speed_kmh)
                state.last_known_average_kmh = state.baseline_kmh
            state.move_to(fix)
            state.hysteresis.record_good()
            return

        state.display_distance_km += distance_for_speed_km(
            state.last_known_average_kmh or 0.0, dt
        )
        state.display_elapsed_s += dt
        state.covered_since_known_s += dt
        state.hysteresis.record_bad(SignalIssue.WEAK_SIGNAL)

    def _steady_step(
        self,
        state: SessionState,
        fix: RawFix,
        good: bool,
        credited_km: float,
        credited_s: float,
        dt: float,
    ) -> None:
        if good:
            state.display_distance_km += credited_km
            state.display_elapsed_s += credited_s
            state.average_distance_km += credited_km
            state.average_elapsed_s += credited_s
            state.move_to(fix)
            state.hysteresis.record_good()
            return

        state.hysteresis.record_bad(SignalIssue.WEAK_SIGNAL)
        state.covered_since_known_s += dt
        moving = fix.speed_mps is not None and fix.speed_mps >= self.config.moving_speed_mps
        if moving:
            # Display only: the average decays toward the true slower value
            state.display_distance_km += distance_for_speed_km(
                state.last_known_average_kmh or 0.0, dt
            )
            state.display_elapsed_s += dt
        else:
            # Parked with poor reception: time passes, no distance
            state.display_elapsed_s += dt
            state.average_elapsed_s += dt

    def _make_record(
        self,
        state: SessionState,
        fix: RawFix,
        phase: TrackingPhase,
        signal_good: bool,
        jump: bool,
        warmup_average: float | None,
    ) -> Record:
        elapsed = max(fix.timestamp - state.start_time, state.last_elapsed)
        state.last_elapsed = elapsed
        return Record(
            latitude=fix.latitude,
            longitude=fix.longitude,
            timestamp=fix.timestamp,
            accuracy_m=fix.accuracy_m,
            altitude=fix.altitude,
            speed_mps=fix.speed_mps,
            display_distance_km=state.display_distance_km,
            average_distance_km=state.average_distance_km,
            elapsed=elapsed,
            good_elapsed_s=state.average_elapsed_s,
            phase=phase,
            signal_good=signal_good,
            gps_jump=jump,
            warmup_average_kmh=warmup_average,
        )

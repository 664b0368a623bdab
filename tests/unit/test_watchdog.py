"""
Dead-Reckoning Watchdog Unit Tests
==================================

Virtual records during signal loss and the cases where the watchdog
must stay quiet.
"""

import copy
from datetime import timedelta

import pytest

from tests.conftest import T0, fix_at
from triptrack.config import WatchdogConfig
from triptrack.core.pipeline import FixPipeline
from triptrack.core.watchdog import effective_speed_mps, evaluate_watchdog
from triptrack.domain.models import RecordKind


def at(seconds: float):
    return T0 + timedelta(seconds=seconds)


class TestEvaluate:
    """Decision logic of evaluate_watchdog."""

    def test_virtual_record_after_timeout(self, warmed_session):
        _, state, _ = warmed_session

        result = evaluate_watchdog(state, at(546))

        assert result is not None
        record = result.record
        assert record.kind is RecordKind.VIRTUAL
        assert record.is_virtual
        assert record.accuracy_m is None
        assert record.display_accuracy_m(9999.0) == 9999.0
        assert record.latitude == state.last_known_lat
        assert record.longitude == state.last_known_lon
        assert record.speed_kmh == pytest.approx(60.0, rel=1e-6)
        assert result.gap_s == 6.0
        assert result.added_distance_km == pytest.approx(60.0 * 6 / 3600, rel=1e-6)
        assert record.display_distance_km == pytest.approx(9.1, rel=1e-6)
        assert record.elapsed == timedelta(seconds=546)

    def test_evaluation_does_not_touch_state(self, warmed_session):
        _, state, _ = warmed_session
        before = copy.deepcopy(state)

        evaluate_watchdog(state, at(560))

        assert state == before

    def test_quiet_before_timeout(self, warmed_session):
        _, state, _ = warmed_session

        assert evaluate_watchdog(state, at(544)) is None

    def test_quiet_during_warmup(self, make_fix):
        pipeline = FixPipeline()
        state = pipeline.new_session()
        for i in range(5):
            pipeline.process(state, make_fix(i * 60, km=float(i), speed=16.7))

        assert evaluate_watchdog(state, at(600)) is None

    def test_quiet_before_start(self):
        state = FixPipeline().new_session()

        assert evaluate_watchdog(state, at(600)) is None

    def test_quiet_when_stopped(self, warmed_session):
        _, state, _ = warmed_session
        state.last_speed_mps = 0.5

        assert evaluate_watchdog(state, at(600)) is None

    def test_quiet_without_average(self, warmed_session):
        _, state, _ = warmed_session
        state.last_known_average_kmh = None

        assert evaluate_watchdog(state, at(600)) is None

    def test_custom_timeout(self, warmed_session):
        _, state, _ = warmed_session
        config = WatchdogConfig(period_s=1.0, timeout_s=10.0)

        assert evaluate_watchdog(state, at(548), config) is None
        assert evaluate_watchdog(state, at(550), config) is not None


class TestEffectiveSpeed:

    def test_prefers_last_reported_speed(self, warmed_session):
        _, state, _ = warmed_session

        assert effective_speed_mps(state) == 16.7

    def test_falls_back_to_average(self, warmed_session):
        _, state, _ = warmed_session
        state.last_speed_mps = None

        assert effective_speed_mps(state) == pytest.approx(60.0 / 3.6, rel=1e-6)


class TestApply:
    """Applying results and the interaction with later fixes."""

    def test_apply_updates_display_totals_only(self, warmed_session):
        _, state, _ = warmed_session
        average_before = (state.average_distance_km, state.average_elapsed_s)

        evaluate_watchdog(state, at(546)).apply(state)

        assert state.display_distance_km == pytest.approx(9.1, rel=1e-6)
        assert state.display_elapsed_s == 546.0
        assert (state.average_distance_km, state.average_elapsed_s) == average_before
        assert state.last_processed_time == at(546)
        assert state.dead_reckoning is True

    def test_repeated_firing_counts_each_gap_once(self, warmed_session):
        _, state, _ = warmed_session

        evaluate_watchdog(state, at(546)).apply(state)
        assert evaluate_watchdog(state, at(548)) is None
        second = evaluate_watchdog(state, at(551))
        second.apply(state)

        assert second.gap_s == 5.0
        assert state.display_distance_km == pytest.approx(9.0 + 60.0 * 11 / 3600, rel=1e-6)

    def test_next_fix_credits_only_the_remainder(self, warmed_session):
        pipeline, state, _ = warmed_session
        evaluate_watchdog(state, at(546)).apply(state)

        record = pipeline.process(state, fix_at(600, km=10.0, speed=16.7))

        # 1 km over 60 s, of which 6 s were already dead-reckoned
        assert record.display_distance_km == pytest.approx(10.0, rel=1e-6)
        assert state.dead_reckoning is False
        assert state.average_distance_km == pytest.approx(9.9, rel=1e-6)

"""
Signal Quality
==============

Per-fix classification used by the pipeline:

- SignalQualityClassifier: good/bad label from the accuracy radius,
  with a threshold that adapts to tracking phase and current speed.
- PlausibilityGuard: flags GPS jumps, i.e. intervals whose implied
  speed is physically impossible for the vehicle.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..domain.models import TrackingPhase


@dataclass
class SignalQualityClassifier:
    """Adaptive accuracy threshold. Recomputed for every fix."""

    warmup_accuracy_m: float = 500.0
    slow_accuracy_m: float = 100.0
    moving_accuracy_m: float = 50.0
    moving_speed_mps: float = 2.0

    def threshold(self, phase: TrackingPhase, speed_mps: float | None) -> float:
        """Accuracy radius (meters) at or below which a fix counts as good."""
        if phase is TrackingPhase.WARMUP:
            return self.warmup_accuracy_m
        if speed_mps is None or speed_mps < self.moving_speed_mps:
            return self.slow_accuracy_m
        return self.moving_accuracy_m

    def is_good(
        self,
        accuracy_m: float | None,
        phase: TrackingPhase,
        speed_mps: float | None,
    ) -> bool:
        # Missing accuracy is untrusted
        if accuracy_m is None:
            return False
        return accuracy_m <= self.threshold(phase, speed_mps)


@dataclass
class PlausibilityGuard:
    """Rejects intervals implying an impossible instantaneous speed."""

    max_speed_kmh: float = 250.0

    def is_jump(self, speed_kmh: float | None) -> bool:
        if speed_kmh is None:
            return False
        return speed_kmh > self.max_speed_kmh

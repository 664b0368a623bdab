"""Mutable state of one tracking session."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from statistics import mean

from ..domain.models import RawFix, SourceFault, TrackingPhase
from .hysteresis import RecoveryHysteresis
from .throttle import ThrottleGate


@dataclass
class SessionState:
    """
    Everything the pipeline and the watchdog share.

    Created when tracking starts and discarded when it stops. Not
    thread-safe on its own: callers serialize access (see TripTracker).
    """

    throttle: ThrottleGate = field(default_factory=ThrottleGate)
    hysteresis: RecoveryHysteresis = field(default_factory=RecoveryHysteresis)
    phase: TrackingPhase = TrackingPhase.WARMUP
    accepted_count: int = 0

    start_time: datetime | None = None
    last_processed_time: datetime | None = None
    last_elapsed: timedelta = timedelta(0)

    warmup_samples: list[float] = field(default_factory=list)  # km/h

    # All-signal totals
    display_distance_km: float = 0.0
    display_elapsed_s: float = 0.0
    # Good-signal-only totals, seeded from the display totals at warm-up end
    average_distance_km: float = 0.0
    average_elapsed_s: float = 0.0

    last_known_average_kmh: float | None = None

    # Last position with usable geometry
    last_known_lat: float | None = None
    last_known_lon: float | None = None
    last_known_time: datetime | None = None
    # Seconds since last_known_time already credited by estimates
    covered_since_known_s: float = 0.0

    last_speed_mps: float | None = None
    dead_reckoning: bool = False
    fault: SourceFault | None = None

    @property
    def started(self) -> bool:
        return self.start_time is not None

    @property
    def warmed_up(self) -> bool:
        return self.phase is TrackingPhase.STEADY

    @property
    def baseline_kmh(self) -> float | None:
        """Arithmetic mean of the warm-up speed samples."""
        if not self.warmup_samples:
            return None
        return mean(self.warmup_samples)

    @property
    def current_average_kmh(self) -> float | None:
        """Average speed exposed to the summary, None when no baseline exists."""
        if self.last_known_average_kmh is None:
            return None
        if self.phase is TrackingPhase.WARMUP and self.last_known_average_kmh <= 0:
            return None
        return self.last_known_average_kmh

    def move_to(self, fix: RawFix) -> None:
        """Adopt fix as the last position with usable geometry."""
        self.last_known_lat = fix.latitude
        self.last_known_lon = fix.longitude
        self.last_known_time = fix.timestamp
        self.covered_since_known_s = 0.0

    def freeze_baseline(self) -> None:
        """End warm-up: the good-signal totals start from the display totals."""
        self.average_distance_km = self.display_distance_km
        self.average_elapsed_s = self.display_elapsed_s
        self.phase = TrackingPhase.STEADY

    def refresh_average(self) -> float | None:
        if self.average_elapsed_s > 0:
            self.last_known_average_kmh = self.average_distance_km / (
                self.average_elapsed_s / 3600.0
            )
        return self.last_known_average_kmh

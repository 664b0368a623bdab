"""Triptrack Domain Models - Pydantic models for fixes, records and summaries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class RecordKind(str, Enum):
    """Origin of a history record."""

    REAL = "real"            # Produced from an accepted fix
    VIRTUAL = "virtual"      # Synthesized by the dead-reckoning watchdog


class TrackingPhase(str, Enum):
    """Calibration phase of a tracking session."""

    WARMUP = "warmup"
    STEADY = "steady"


class SignalState(str, Enum):
    """Externally visible signal state (recovery hysteresis)."""

    NORMAL = "normal"
    WAITING_RECOVERY = "waiting_recovery"


class SignalIssue(str, Enum):
    """Cause of the most recent signal degradation."""

    NONE = "none"
    WEAK_SIGNAL = "weak_signal"
    GPS_JUMP = "gps_jump"


class RawFix(BaseModel):
    """Positional fix delivered by a sample source."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy_m: float | None = Field(default=None, ge=0)  # None = untrusted
    speed_mps: float | None = Field(default=None, ge=0)
    altitude: float | None = None  # metres above sea level
    timestamp: AwareDatetime = Field(default_factory=lambda: datetime.now(UTC))


class Record(BaseModel):
    """Immutable history entry, real or dead-reckoned."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    timestamp: datetime
    kind: RecordKind = RecordKind.REAL
    accuracy_m: float | None = None
    altitude: float | None = None
    speed_mps: float | None = None

    # Cumulative totals at the time this record was produced
    display_distance_km: float = 0.0
    average_distance_km: float = 0.0  # good-signal-only distance
    elapsed: timedelta = timedelta(0)  # since session start
    good_elapsed_s: float = 0.0  # time counted while signal was good

    # Classification snapshot for the display layer
    phase: TrackingPhase = TrackingPhase.WARMUP
    signal_good: bool = True
    gps_jump: bool = False
    warmup_average_kmh: float | None = None

    @property
    def is_virtual(self) -> bool:
        return self.kind is RecordKind.VIRTUAL

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed.total_seconds()

    @property
    def speed_kmh(self) -> float | None:
        if self.speed_mps is None:
            return None
        return self.speed_mps * 3.6

    def display_accuracy_m(self, sentinel: float) -> float | None:
        """Accuracy shown to the user; virtual rows show the sentinel."""
        if self.is_virtual:
            return sentinel
        return self.accuracy_m


class SourceFault(BaseModel):
    """Error reported by a sample source."""

    message: str
    transient: bool = True
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TripSummary(BaseModel):
    """Live summary exposed to the display layer."""

    speed_kmh: float = 0.0
    average_speed_kmh: float | None = None
    distance_km: float = 0.0
    elapsed: timedelta = timedelta(0)
    status: str = ""
    record_count: int = 0
    phase: TrackingPhase = TrackingPhase.WARMUP
    signal_state: SignalState = SignalState.NORMAL

"""History log and the summary derived from it."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from ..config import TripConfig
from ..domain.models import Record, SignalIssue, TrackingPhase, TripSummary
from .session import SessionState


class HistoryLog(Sequence[Record]):
    """Append-only, ordered sequence of records."""

    def __init__(self) -> None:
        self._records: list[Record] = []

    def append(self, record: Record) -> None:
        self._records.append(record)

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return tuple(self._records[index])
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(tuple(self._records))

    @property
    def last(self) -> Record | None:
        return self._records[-1] if self._records else None

    @property
    def virtual_count(self) -> int:
        return sum(1 for r in self._records if r.is_virtual)

    def snapshot(self) -> tuple[Record, ...]:
        """Read-only copy for the display layer."""
        return tuple(self._records)


def row_average_kmh(record: Record, fallback_kmh: float | None) -> float | None:
    """
    Average speed shown next to a history row.

    Warm-up rows show the running mean of the warm-up samples. Steady
    rows with a good signal show their own good-signal average; every
    other row carries the session's current average forward.
    """
    if record.phase is TrackingPhase.WARMUP:
        return record.warmup_average_kmh
    if record.signal_good and not record.is_virtual and record.good_elapsed_s > 0:
        return record.average_distance_km / (record.good_elapsed_s / 3600.0)
    return fallback_kmh


def status_message(state: SessionState | None, config: TripConfig | None = None) -> str:
    config = config or TripConfig()
    if state is None or not state.started:
        if state is not None and state.fault is not None:
            return f"Location error: {state.fault.message}"
        return "Waiting for location..."
    if state.fault is not None:
        return f"Location error: {state.fault.message}"
    if state.dead_reckoning:
        return "Dead reckoning"

    hysteresis = state.hysteresis
    if hysteresis.is_recovering:
        progress = f"{hysteresis.consecutive_good}/{hysteresis.required_good}"
        if hysteresis.issue is SignalIssue.GPS_JUMP:
            return f"GPS jump detected - recovering ({progress})"
        return f"Weak GPS signal - recovering ({progress})"

    if state.phase is TrackingPhase.WARMUP:
        return f"Calibrating ({state.accepted_count}/{config.tracking.warmup_fixes})"
    return "Tracking"


def build_summary(
    state: SessionState | None,
    history: HistoryLog,
    status: str,
) -> TripSummary:
    last = history.last
    if state is None or last is None:
        return TripSummary(status=status, record_count=len(history))
    return TripSummary(
        speed_kmh=last.speed_kmh or 0.0,
        average_speed_kmh=state.current_average_kmh,
        distance_km=state.display_distance_km,
        elapsed=last.elapsed,
        status=status,
        record_count=len(history),
        phase=state.phase,
        signal_state=state.hysteresis.state,
    )

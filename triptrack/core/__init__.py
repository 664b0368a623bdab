"""Triptrack Core - Fix pipeline, dead-reckoning watchdog and session orchestration."""

from .events import Event, EventBus, EventType
from .history import HistoryLog, build_summary, row_average_kmh, status_message
from .hysteresis import RecoveryHysteresis
from .pipeline import FixPipeline
from .quality import PlausibilityGuard, SignalQualityClassifier
from .session import SessionState
from .throttle import ThrottleGate
from .tracker import SampleSource, TripTracker, replay_fixes
from .watchdog import WatchdogResult, effective_speed_mps, evaluate_watchdog

__all__ = [
    # Events
    "Event",
    "EventBus",
    "EventType",
    # Pipeline
    "FixPipeline",
    "HistoryLog",
    "PlausibilityGuard",
    "RecoveryHysteresis",
    "SampleSource",
    "SessionState",
    "SignalQualityClassifier",
    "ThrottleGate",
    # Orchestration
    "TripTracker",
    "WatchdogResult",
    "build_summary",
    "effective_speed_mps",
    "evaluate_watchdog",
    "replay_fixes",
    "row_average_kmh",
    "status_message",
]

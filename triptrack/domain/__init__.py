"""Triptrack Domain - Core data models."""

from .models import (
    RawFix,
    Record,
    RecordKind,
    SignalIssue,
    SignalState,
    SourceFault,
    TrackingPhase,
    TripSummary,
)

__all__ = [
    "RawFix",
    "Record",
    "RecordKind",
    "SignalIssue",
    "SignalState",
    "SourceFault",
    "TrackingPhase",
    "TripSummary",
]

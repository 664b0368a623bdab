"""Throttle gate - bounds the fix processing rate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ThrottleGate:
    """
    Drop fixes that arrive sooner than min_interval_s after the last accepted one.

    The gate only remembers acceptances; rejected fixes leave it untouched.
    """

    min_interval_s: float = 2.8
    last_accepted: datetime | None = None

    def allows(self, timestamp: datetime) -> bool:
        """Check whether a fix at timestamp may be processed."""
        if self.last_accepted is None:
            return True
        elapsed = (timestamp - self.last_accepted).total_seconds()
        return elapsed >= self.min_interval_s

    def accept(self, timestamp: datetime) -> None:
        self.last_accepted = timestamp

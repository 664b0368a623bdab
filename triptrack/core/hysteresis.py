"""Recovery hysteresis - keeps the signal status from flapping."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..domain.models import SignalIssue, SignalState

logger = logging.getLogger(__name__)


@dataclass
class RecoveryHysteresis:
    """
    Two-state machine: NORMAL and WAITING_RECOVERY.

    Any bad fix (weak signal or GPS jump) moves to WAITING_RECOVERY and
    clears the counter. Only `required_good` consecutive good fixes since
    the most recent bad one bring the state back to NORMAL.
    """

    required_good: int = 3
    state: SignalState = SignalState.NORMAL
    issue: SignalIssue = SignalIssue.NONE
    consecutive_good: int = 0

    @property
    def is_recovering(self) -> bool:
        return self.state is SignalState.WAITING_RECOVERY

    def record_bad(self, issue: SignalIssue = SignalIssue.WEAK_SIGNAL) -> SignalState:
        if self.state is SignalState.NORMAL:
            logger.info("Signal degraded (%s), waiting for recovery", issue.value)
        self.state = SignalState.WAITING_RECOVERY
        self.issue = issue
        self.consecutive_good = 0
        return self.state

    def record_good(self) -> SignalState:
        if self.state is SignalState.NORMAL:
            return self.state

        self.consecutive_good += 1
        if self.consecutive_good >= self.required_good:
            logger.info(
                "Signal recovered after %d consecutive good fixes",
                self.consecutive_good,
            )
            self.state = SignalState.NORMAL
            self.issue = SignalIssue.NONE
            self.consecutive_good = 0
        return self.state

"""
Trip Tracker - Async Session Orchestration
==========================================

Owns one tracking session: the session state, the history log, the
fix consumer and the dead-reckoning watchdog timer.

Features:
- Fix delivery and watchdog ticks serialized behind one asyncio.Lock
- Watchdog runs on a fixed period, independent of fix arrival
- Source faults surface in the status, tracking keeps listening
- Clean shutdown: fix delivery and timer stop before state is dropped

Usage:
    tracker = TripTracker(config)
    await tracker.start(source=AsyncGPSClient())

    print(tracker.summary.distance_km)

    await tracker.stop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import AsyncIterator, Callable, Protocol

from ..config import TripConfig
from ..domain.models import RawFix, Record, SourceFault, TrackingPhase, TripSummary
from .events import EventBus, EventType
from .history import HistoryLog, build_summary, row_average_kmh, status_message
from .pipeline import FixPipeline
from .session import SessionState
from .watchdog import evaluate_watchdog

logger = logging.getLogger(__name__)


class SampleSource(Protocol):
    """Push-style fix feed with a fault channel."""

    def stream_fixes(self) -> AsyncIterator[RawFix]: ...

    def on_fault(self, callback: Callable[[SourceFault], None]) -> None: ...

    async def stop(self) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TripTracker:
    """
    Async tracker for a single trip.

    SessionState is created on start() and discarded on stop(); both the
    fix path and the watchdog mutate it only while holding self._lock.
    """

    def __init__(
        self,
        config: TripConfig | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config or TripConfig()
        self.event_bus = event_bus
        self.pipeline = FixPipeline(self.config.tracking)
        self._clock = clock

        self._lock = asyncio.Lock()
        self._state: SessionState | None = None
        self._history = HistoryLog()
        self._running = False
        self._source: SampleSource | None = None
        self._source_task: asyncio.Task | None = None
        self._watchdog_task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._status_override: str | None = None
        self._last_status = ""
        self._final_summary: TripSummary | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def state(self) -> SessionState | None:
        """Live session state (None when not tracking)."""
        return self._state

    @property
    def history(self) -> tuple[Record, ...]:
        """Ordered, read-only view of the history log."""
        return self._history.snapshot()

    @property
    def status(self) -> str:
        if self._status_override is not None:
            return self._status_override
        return status_message(self._state, self.config)

    @property
    def summary(self) -> TripSummary:
        if self._state is None and self._final_summary is not None:
            return self._final_summary.model_copy(update={"status": self.status})
        return build_summary(self._state, self._history, self.status)

    def row_average_kmh(self, index: int) -> float | None:
        """Average speed to display next to history row `index`."""
        record = self._history[index]
        fallback = self._state.current_average_kmh if self._state else None
        if fallback is None and self._final_summary is not None:
            fallback = self._final_summary.average_speed_kmh
        return row_average_kmh(record, fallback)

    async def start(
        self,
        source: SampleSource | None = None,
        allowed: bool = True,
        run_watchdog: bool = True,
    ) -> bool:
        """
        Start a new session.

        Args:
            source: fix feed to consume (None = fixes pushed via handle_fix)
            allowed: lifecycle/permission gate; False refuses to start
            run_watchdog: run the wall-clock watchdog timer

        Returns True if tracking started.
        """
        if self._running:
            logger.warning("TripTracker already running")
            return True

        if not allowed:
            logger.warning("Tracking not permitted, not starting")
            self._status_override = "Location permission denied"
            await self._emit(EventType.TRACKING_DENIED)
            await self._publish_status()
            return False

        self._state = self.pipeline.new_session()
        self._history = HistoryLog()
        self._status_override = None
        self._final_summary = None
        self._running = True

        if run_watchdog:
            self._watchdog_task = asyncio.create_task(self._watchdog_loop(), name="watchdog")

        if source is not None:
            self._source = source
            source.on_fault(self.report_fault)
            self._source_task = asyncio.create_task(self._consume(source), name="fix-source")

        logger.info("TripTracker started")
        await self._emit(EventType.TRACKING_STARTED)
        await self._publish_status()
        return True

    async def stop(self) -> TripSummary:
        """Stop fix delivery and the watchdog, then discard the session."""
        self._running = False

        for task in (self._source_task, self._watchdog_task, *self._pending):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                # Already finished with an error; cleanup must still run
                logger.exception("Tracker task %s failed", task.get_name())
        self._source_task = None
        self._watchdog_task = None
        self._pending.clear()

        if self._source is not None:
            await self._source.stop()
            self._source = None

        async with self._lock:
            if self._state is not None:
                self._final_summary = build_summary(self._state, self._history, self.status)
            self._state = None
            self._status_override = "Tracking stopped"

        logger.info("TripTracker stopped")
        await self._emit(EventType.TRACKING_STOPPED, self._final_summary)
        await self._publish_status()
        return self.summary

    async def handle_fix(self, fix: RawFix) -> Record | None:
        """Run one fix through the pipeline and append its record."""
        async with self._lock:
            if not self._running or self._state is None:
                return None
            phase_before = self._state.phase
            record = self.pipeline.process(self._state, fix)
            if record is None:
                return None
            self._history.append(record)
            warmup_done = (
                phase_before is TrackingPhase.WARMUP
                and self._state.phase is TrackingPhase.STEADY
            )

        await self._emit(EventType.RECORD_APPENDED, record)
        if warmup_done:
            await self._emit(EventType.WARMUP_COMPLETED, self.summary)
        await self._publish_status()
        return record

    async def tick(self, now: datetime | None = None) -> Record | None:
        """One watchdog evaluation; appends a virtual record when due."""
        async with self._lock:
            if not self._running or self._state is None:
                return None
            result = evaluate_watchdog(
                self._state,
                now or self._clock(),
                self.config.watchdog,
                self.config.tracking,
            )
            if result is None:
                return None
            result.apply(self._state)
            self._history.append(result.record)

        await self._emit(EventType.RECORD_APPENDED, result.record)
        await self._publish_status()
        return result.record

    async def handle_fault(self, fault: SourceFault) -> None:
        """Record a source fault; no state reset, keep listening."""
        async with self._lock:
            if self._state is None:
                return
            self._state.fault = fault
        logger.warning("Location source fault: %s", fault.message)
        await self._emit(EventType.SOURCE_FAULT, fault)
        await self._publish_status()

    def report_fault(self, fault: SourceFault) -> None:
        """Sync fault callback for sources; schedules handle_fault."""
        task = asyncio.get_running_loop().create_task(self.handle_fault(fault))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _consume(self, source: SampleSource) -> None:
        try:
            async for fix in source.stream_fixes():
                if not self._running:
                    break
                await self.handle_fix(fix)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Location source failed: %s", e)
            await self.handle_fault(SourceFault(message=str(e), transient=False))

    async def _watchdog_loop(self) -> None:
        period = self.config.watchdog.period_s
        while self._running:
            await asyncio.sleep(period)
            await self.tick()

    async def _emit(self, event_type: EventType, data=None) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event_type, data)

    async def _publish_status(self) -> None:
        status = self.status
        if status != self._last_status:
            self._last_status = status
            await self._emit(EventType.STATUS_CHANGED, status)


async def replay_fixes(tracker: TripTracker, fixes: Iterable[RawFix]) -> TripSummary:
    """
    Feed recorded fixes through a tracker on a simulated clock.

    Watchdog ticks are issued every watchdog period between fixes, so
    gaps in the recording produce the same virtual records a live
    session would.
    """
    await tracker.start(run_watchdog=False)
    period = tracker.config.watchdog.period_s
    next_tick: datetime | None = None

    for fix in fixes:
        if next_tick is not None:
            while next_tick < fix.timestamp:
                await tracker.tick(next_tick)
                next_tick = next_tick + timedelta(seconds=period)
        await tracker.handle_fix(fix)
        if next_tick is None:
            next_tick = fix.timestamp + timedelta(seconds=period)

    return await tracker.stop()

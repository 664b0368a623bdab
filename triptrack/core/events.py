"""
Triptrack Event Bus - Async Pub/Sub Event System
================================================

Decouples the tracker from whatever displays its output.

Features:
- Async event processing
- Priority-based handlers
- Event history for debugging
- Graceful error handling

Usage:
    bus = EventBus()

    @bus.on(EventType.RECORD_APPENDED)
    async def show_row(event: Event):
        print(event.data.display_distance_km)

    await bus.start()
    await bus.emit(EventType.RECORD_APPENDED, data=record)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Coroutine, TypeAlias

logger = logging.getLogger(__name__)

# Type aliases
AsyncHandler: TypeAlias = Callable[["Event"], Coroutine[Any, Any, None]]


class EventType(Enum):
    """All event types in the system."""

    # Lifecycle
    TRACKING_STARTED = auto()
    TRACKING_STOPPED = auto()
    TRACKING_DENIED = auto()

    # Session
    RECORD_APPENDED = auto()
    WARMUP_COMPLETED = auto()
    STATUS_CHANGED = auto()

    # Source
    SOURCE_FAULT = auto()


@dataclass
class Event:
    """Immutable event with metadata."""

    type: EventType
    data: Any = None
    timestamp: float = field(default_factory=time.time)
    source: str = "tracker"


@dataclass
class HandlerInfo:
    """Handler registration info."""

    handler: AsyncHandler
    priority: int = 100  # Lower = higher priority
    once: bool = False  # Remove after first call


class EventBus:
    """
    Async event bus with pub/sub pattern.

    Supports:
    - Multiple handlers per event
    - Priority ordering
    - One-time handlers
    - Event history
    - Error isolation
    """

    def __init__(self, max_history: int = 1000) -> None:
        self._handlers: dict[EventType, list[HandlerInfo]] = {}
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._running = False
        self._task: asyncio.Task | None = None
        self._history: list[Event] = []
        self._max_history = max_history
        self._stats = {
            "events_published": 0,
            "events_processed": 0,
            "handler_errors": 0,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(
        self,
        event_type: EventType,
        handler: AsyncHandler,
        priority: int = 100,
        once: bool = False,
    ) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: Event to listen for
            handler: Async handler function
            priority: Lower = called first (default 100)
            once: Remove handler after first call
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []

        info = HandlerInfo(handler=handler, priority=priority, once=once)
        self._handlers[event_type].append(info)
        self._handlers[event_type].sort(key=lambda h: h.priority)

        logger.debug(
            "Subscribed to %s: %s (priority=%d)",
            event_type.name,
            handler.__name__,
            priority,
        )

    def unsubscribe(self, event_type: EventType, handler: AsyncHandler) -> bool:
        """Remove a handler. Returns True if found."""
        if event_type not in self._handlers:
            return False

        for i, info in enumerate(self._handlers[event_type]):
            if info.handler == handler:
                del self._handlers[event_type][i]
                return True
        return False

    def on(
        self, event_type: EventType, priority: int = 100, once: bool = False
    ) -> Callable[[AsyncHandler], AsyncHandler]:
        """Decorator for subscribing to events."""
        def decorator(handler: AsyncHandler) -> AsyncHandler:
            self.subscribe(event_type, handler, priority, once)
            return handler
        return decorator

    async def emit(
        self,
        event_type: EventType,
        data: Any = None,
        source: str = "tracker",
    ) -> Event:
        """Queue an event and return it."""
        event = Event(type=event_type, data=data, source=source)
        await self._queue.put(event)
        self._stats["events_published"] += 1
        return event

    async def start(self) -> None:
        """Start the event processing loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._process_loop())
        logger.debug("Event bus started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop the event bus after draining the queue."""
        if self._task:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Event queue drain timeout, forcing stop")

            self._running = False
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._running = False
        logger.debug("Event bus stopped")

    async def _process_loop(self) -> None:
        while self._running:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        """Dispatch event to all handlers."""
        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        handlers = self._handlers.get(event.type, [])
        if not handlers:
            logger.debug("No handlers for %s", event.type.name)
            return

        to_remove: list[HandlerInfo] = []

        for info in list(handlers):
            try:
                await info.handler(event)
                self._stats["events_processed"] += 1

                if info.once:
                    to_remove.append(info)

            except Exception as e:
                logger.error(
                    "Handler error for %s: %s - %s",
                    event.type.name,
                    info.handler.__name__,
                    e,
                )
                self._stats["handler_errors"] += 1

        for info in to_remove:
            self._handlers[event.type].remove(info)

    def get_history(
        self,
        event_type: EventType | None = None,
        limit: int = 100,
    ) -> list[Event]:
        """Get recent events, optionally filtered by type."""
        events = self._history
        if event_type:
            events = [e for e in events if e.type == event_type]
        return events[-limit:]

    def get_stats(self) -> dict:
        """Get event bus statistics."""
        return {
            **self._stats,
            "queue_size": self._queue.qsize(),
            "handler_count": sum(len(h) for h in self._handlers.values()),
            "history_size": len(self._history),
        }

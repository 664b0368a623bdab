"""
Event Bus Unit Tests
====================
"""

import pytest
import pytest_asyncio

from triptrack.core.events import Event, EventBus, EventType

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def bus():
    bus = EventBus()
    await bus.start()
    yield bus
    await bus.stop()


class TestEventBus:
    """Tests for EventBus."""

    async def test_handler_receives_event(self, bus):
        received: list[Event] = []

        @bus.on(EventType.RECORD_APPENDED)
        async def handler(event: Event) -> None:
            received.append(event)

        await bus.emit(EventType.RECORD_APPENDED, data=42)
        await bus.stop()

        assert len(received) == 1
        assert received[0].data == 42
        assert received[0].source == "tracker"

    async def test_priority_order(self, bus):
        order: list[str] = []

        async def late(event: Event) -> None:
            order.append("late")

        async def early(event: Event) -> None:
            order.append("early")

        bus.subscribe(EventType.STATUS_CHANGED, late, priority=200)
        bus.subscribe(EventType.STATUS_CHANGED, early, priority=10)

        await bus.emit(EventType.STATUS_CHANGED, "Tracking")
        await bus.stop()

        assert order == ["early", "late"]

    async def test_once_handler_removed(self, bus):
        calls: list[Event] = []

        @bus.on(EventType.WARMUP_COMPLETED, once=True)
        async def handler(event: Event) -> None:
            calls.append(event)

        await bus.emit(EventType.WARMUP_COMPLETED)
        await bus.emit(EventType.WARMUP_COMPLETED)
        await bus.stop()

        assert len(calls) == 1

    async def test_handler_error_isolated(self, bus):
        calls: list[Event] = []

        async def broken(event: Event) -> None:
            raise RuntimeError("boom")

        async def healthy(event: Event) -> None:
            calls.append(event)

        bus.subscribe(EventType.SOURCE_FAULT, broken, priority=1)
        bus.subscribe(EventType.SOURCE_FAULT, healthy)

        await bus.emit(EventType.SOURCE_FAULT, "gpsd down")
        await bus.stop()

        assert len(calls) == 1
        assert bus.get_stats()["handler_errors"] == 1

    async def test_unsubscribe(self, bus):
        async def handler(event: Event) -> None:
            pass

        bus.subscribe(EventType.TRACKING_STARTED, handler)
        assert bus.unsubscribe(EventType.TRACKING_STARTED, handler) is True
        assert bus.unsubscribe(EventType.TRACKING_STARTED, handler) is False

    async def test_history_filter(self, bus):
        await bus.emit(EventType.TRACKING_STARTED)
        await bus.emit(EventType.STATUS_CHANGED, "Calibrating (1/10)")
        await bus.stop()

        history = bus.get_history(EventType.STATUS_CHANGED)
        assert [e.data for e in history] == ["Calibrating (1/10)"]
        assert len(bus.get_history()) == 2
        assert not bus.is_running

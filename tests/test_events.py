"""Tests for AsyncEventBus and Event classes."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from aitarget.core.events import AsyncEventBus, Event, EventType

# ============================================================================
# EVENT DATACLASS TESTS
# ============================================================================


class TestEvent:
    """Tests for Event dataclass."""

    def test_event_with_required_fields(self):
        """Test Event creation with only type."""
        event = Event(type=EventType.SCAN_STARTED)
        assert event.type == EventType.SCAN_STARTED
        assert len(event.id) == 36  # UUID format
        assert event.data == {}
        assert event.source == "unknown"
        assert isinstance(event.timestamp, float)

    def test_event_to_dict(self):
        """Test serialization uses the event type value."""
        ts = time.time()
        event = Event(
            type=EventType.SCAN_COMPLETED,
            data={"count": 4},
            source="registry_engine",
            timestamp=ts,
            id="evt-1",
        )
        assert event.to_dict() == {
            "id": "evt-1",
            "type": "scan.completed",
            "data": {"count": 4},
            "source": "registry_engine",
            "timestamp": ts,
        }

    def test_event_generates_unique_ids(self):
        """Test that each event gets a unique ID."""
        events = [Event(type=EventType.SCAN_STARTED) for _ in range(50)]
        assert len({e.id for e in events}) == 50


# ============================================================================
# EVENT BUS TESTS
# ============================================================================


class TestAsyncEventBus:
    """Tests for AsyncEventBus."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Test lifecycle flags."""
        bus = AsyncEventBus()
        assert bus.is_running is False

        await bus.start()
        await bus.start()
        assert bus.is_running is True

        await bus.stop()
        await bus.stop()
        assert bus.is_running is False

    @pytest.mark.asyncio
    async def test_typed_and_wildcard_handlers(self):
        """Test typed handlers see their type, wildcard handlers see everything."""
        bus = AsyncEventBus()
        typed = AsyncMock()
        wildcard = AsyncMock()
        bus.subscribe(EventType.SCAN_COMPLETED, typed)
        bus.subscribe(None, wildcard)
        await bus.start()

        await bus.emit(EventType.SCAN_STARTED)
        await bus.emit(EventType.SCAN_COMPLETED, {"count": 1}, source="test")
        await asyncio.sleep(0.01)

        assert typed.await_count == 1
        assert typed.await_args.args[0].data == {"count": 1}
        assert wildcard.await_count == 2
        await bus.stop()

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        """Test unsubscribed handlers are not called, and unsubscribing twice is fine."""
        bus = AsyncEventBus()
        handler = AsyncMock()
        unsubscribe = bus.subscribe(EventType.SCAN_STARTED, handler)
        unsubscribe()
        unsubscribe()
        await bus.start()

        await bus.emit(EventType.SCAN_STARTED)
        await bus.stop()

        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_errors_are_isolated(self):
        """Test one failing handler does not stop others."""
        bus = AsyncEventBus()
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()
        bus.subscribe(EventType.SYNC_FAILED, failing)
        bus.subscribe(EventType.SYNC_FAILED, healthy)
        await bus.start()

        await bus.emit(EventType.SYNC_FAILED)
        await bus.stop()

        healthy.assert_awaited_once()
        assert bus.stats["handler_errors"] == 1

    @pytest.mark.asyncio
    async def test_emit_sync_queues_without_awaiting(self):
        """Test synchronous producers can publish before the bus runs."""
        bus = AsyncEventBus()
        handler = AsyncMock()
        bus.subscribe(EventType.MUTATION_QUALIFIED, handler)

        bus.emit_sync(EventType.MUTATION_QUALIFIED, {"records": 2})
        assert bus.queue_size == 1

        await bus.start()
        await asyncio.sleep(0.01)
        await bus.stop()

        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_drains_queue(self):
        """Test events still queued at stop are delivered."""
        bus = AsyncEventBus()
        handler = AsyncMock()
        bus.subscribe(None, handler)
        await bus.start()

        for _ in range(5):
            bus.emit_sync(EventType.SCAN_SKIPPED)
        await bus.stop()

        assert handler.await_count == 5
        assert bus.stats["events_processed"] == 5

    def test_publish_sync_drops_when_full(self):
        """Test a full queue drops instead of blocking."""
        bus = AsyncEventBus(max_queue_size=2)
        for _ in range(3):
            bus.emit_sync(EventType.SCAN_STARTED)

        assert bus.queue_size == 2
        assert bus.stats["events_published"] == 2
        assert bus.stats["events_dropped"] == 1

"""Event system for decoupled communication."""

from aitarget.core.events.bus import AsyncEventBus, Event, EventHandler, EventType

__all__ = [
    "AsyncEventBus",
    "Event",
    "EventHandler",
    "EventType",
]

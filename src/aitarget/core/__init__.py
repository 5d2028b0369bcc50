"""Core module - document model, registry engine and change detection."""

from aitarget.core.engine.registry_engine import RegistryEngine
from aitarget.core.events.bus import AsyncEventBus, Event, EventType

__all__ = [
    "AsyncEventBus",
    "Event",
    "EventType",
    "RegistryEngine",
]

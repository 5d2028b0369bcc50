"""Async event bus carrying registry and watcher notifications."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import defaultdict
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import structlog

from aitarget.core.events.types import EventType

logger = structlog.get_logger(__name__)

# Type alias for event handlers
EventHandler = Callable[["Event"], Coroutine[Any, Any, None]]


@dataclass
class Event:
    """A single notification on the bus."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "unknown"
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "data": self.data,
            "source": self.source,
            "timestamp": self.timestamp,
        }


class AsyncEventBus:
    """
    Queue-backed pub/sub for scan results and change notifications.

    Synchronous producers (the scan pipeline, mutation callbacks) use
    ``publish_sync``; handlers always run as coroutines on the loop.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        """
        Initialize the event bus.

        Args:
            max_queue_size: Maximum number of events to queue
        """
        self._handlers: dict[EventType, list[EventHandler]] = defaultdict(list)
        self._wildcard_handlers: list[EventHandler] = []
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_queue_size)
        self._processing_task: asyncio.Task[None] | None = None
        self._running = False
        self._stats = {
            "events_published": 0,
            "events_processed": 0,
            "events_dropped": 0,
            "handlers_invoked": 0,
            "handler_errors": 0,
        }

    async def start(self) -> None:
        """Start the event processing loop."""
        if self._running:
            return

        self._running = True
        self._processing_task = asyncio.create_task(self._process_events())
        logger.debug("Event bus started")

    async def stop(self) -> None:
        """Stop the loop, draining whatever is still queued."""
        if not self._running:
            return

        self._running = False

        while not self._queue.empty():
            event = self._queue.get_nowait()
            await self._dispatch(event)
            self._stats["events_processed"] += 1

        if self._processing_task:
            self._processing_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._processing_task
            self._processing_task = None

        logger.debug("Event bus stopped", stats=self._stats)

    def subscribe(
        self,
        event_type: EventType | None,
        handler: EventHandler,
    ) -> Callable[[], None]:
        """
        Subscribe to events.

        Args:
            event_type: Event type to subscribe to, or None for all events
            handler: Async handler function

        Returns:
            Unsubscribe function, safe to call more than once
        """
        if event_type is None:
            self._wildcard_handlers.append(handler)
        else:
            self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: EventType | None, handler: EventHandler) -> None:
        handlers = self._wildcard_handlers if event_type is None else self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Event) -> None:
        """Queue an event, waiting for room if the queue is full."""
        await self._queue.put(event)
        self._stats["events_published"] += 1

    def publish_sync(self, event: Event) -> None:
        """
        Queue an event without blocking.

        Drops the event with a warning when the queue is full.
        """
        try:
            self._queue.put_nowait(event)
            self._stats["events_published"] += 1
        except asyncio.QueueFull:
            self._stats["events_dropped"] += 1
            logger.warning("Event queue full, dropping event", event_type=event.type.value)

    async def emit(
        self,
        event_type: EventType,
        data: dict[str, Any] | None = None,
        source: str = "unknown",
    ) -> Event:
        """
        Create and publish an event.

        Returns:
            The created event
        """
        event = Event(type=event_type, data=data or {}, source=source)
        await self.publish(event)
        return event

    def emit_sync(
        self,
        event_type: EventType,
        data: dict[str, Any] | None = None,
        source: str = "unknown",
    ) -> Event:
        """Non-blocking counterpart of ``emit``."""
        event = Event(type=event_type, data=data or {}, source=source)
        self.publish_sync(event)
        return event

    async def _process_events(self) -> None:
        """Background task draining the queue."""
        while self._running:
            try:
                event = await self._queue.get()
                await self._dispatch(event)
                self._stats["events_processed"] += 1
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception("Error in event processing loop", error=str(e))

    async def _dispatch(self, event: Event) -> None:
        handlers = [*self._handlers.get(event.type, []), *self._wildcard_handlers]
        if not handlers:
            return

        await asyncio.gather(
            *(self._invoke_handler(handler, event) for handler in handlers),
            return_exceptions=True,
        )

    async def _invoke_handler(self, handler: EventHandler, event: Event) -> None:
        try:
            self._stats["handlers_invoked"] += 1
            await handler(event)
        except Exception as e:
            self._stats["handler_errors"] += 1
            logger.exception(
                "Handler error",
                handler=getattr(handler, "__name__", repr(handler)),
                event_type=event.type.value,
                error=str(e),
            )

    @property
    def stats(self) -> dict[str, int]:
        """Get event bus statistics."""
        return self._stats.copy()

    @property
    def queue_size(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._running


__all__ = ["AsyncEventBus", "Event", "EventHandler", "EventType"]

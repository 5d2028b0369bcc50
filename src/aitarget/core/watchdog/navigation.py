"""Navigation capability fed by the event bus."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from aitarget.core.events.types import EventType

if TYPE_CHECKING:
    from aitarget.core.events.bus import AsyncEventBus, Event
    from aitarget.core.interfaces.navigation import NavigationListener

logger = structlog.get_logger(__name__)


class EventBusNavigationSource:
    """
    Turns ``navigation.changed`` events into navigation callbacks.

    Lets a host that already publishes page transitions on the bus drive
    the watchdog without exposing a history object. Events must carry the
    new URL under ``data["url"]``.
    """

    def __init__(self, event_bus: AsyncEventBus, initial_url: str = "") -> None:
        self.event_bus = event_bus
        self._url = initial_url
        self._listeners: list[NavigationListener] = []
        self._unsubscribe_bus: Callable[[], None] | None = None

    @property
    def url(self) -> str:
        return self._url

    def subscribe(self, on_change: NavigationListener) -> Callable[[], None]:
        self._listeners.append(on_change)
        if self._unsubscribe_bus is None:
            self._unsubscribe_bus = self.event_bus.subscribe(
                EventType.NAVIGATION_CHANGED, self._on_event
            )

        def unsubscribe() -> None:
            if on_change in self._listeners:
                self._listeners.remove(on_change)
            if not self._listeners and self._unsubscribe_bus is not None:
                self._unsubscribe_bus()
                self._unsubscribe_bus = None

        return unsubscribe

    async def _on_event(self, event: Event) -> None:
        url = event.data.get("url")
        if not url or url == self._url:
            return
        self._url = url
        for listener in list(self._listeners):
            try:
                listener(url)
            except Exception as e:
                logger.exception("Navigation listener failed", url=url, error=str(e))

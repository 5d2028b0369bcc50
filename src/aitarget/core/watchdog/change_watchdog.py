"""Change-detection watchdog that keeps the registry current."""

from __future__ import annotations

import asyncio
import contextlib
import time
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from aitarget.core.dom.clickable import is_interactive_candidate
from aitarget.core.dom.document import MutationObserver
from aitarget.core.events.types import EventType
from aitarget.core.models.config import WatcherConfig
from aitarget.core.watchdog.models import ScanTrigger, WatcherState, WatchdogStats

if TYPE_CHECKING:
    from collections.abc import Callable

    from aitarget.core.dom.document import MutationRecord
    from aitarget.core.dom.models import DOMNode
    from aitarget.core.engine.registry_engine import RegistryEngine
    from aitarget.core.interfaces.navigation import INavigationSource

logger = structlog.get_logger(__name__)

# Attribute changes that can flip visibility or interactability
OBSERVED_ATTRIBUTES = ["disabled", "hidden", "style", "class"]


def batch_qualifies(records: list[MutationRecord]) -> bool:
    """
    Whether a mutation batch can have changed the interactive set.

    True if an added node is or contains an interactive candidate, or an
    observed attribute changed on a candidate.
    """
    for record in records:
        if record.type == "childList":
            for node in record.added_nodes:
                if any(is_interactive_candidate(n) for n in node.iter_subtree()):
                    return True
        elif record.type == "attributes":
            if is_interactive_candidate(record.target):
                return True
    return False


class ChangeWatchdog:
    """
    Re-scans the page when it changes.

    Triggers:
    1. Initial mount - one scan after ``settle_delay``
    2. Navigation - registry cleared, scan after ``settle_delay``; another
       navigation during the delay restarts it
    3. DOM mutation - qualifying batches debounced on the trailing edge
    4. Periodic fallback - a forced scan every ``periodic_interval``

    Everything runs on one event loop. ``start()`` hands back a disposer
    that releases the navigation subscription, the observer and every
    timer; nothing scans after it has been called.
    """

    def __init__(
        self,
        engine: RegistryEngine,
        navigation: INavigationSource | None = None,
        config: WatcherConfig | None = None,
        sync: bool = False,
    ) -> None:
        """
        Initialize the watchdog.

        Args:
            engine: Engine whose registry is kept current
            navigation: URL change source; defaults to the document history
            config: Timing configuration
            sync: Schedule a gateway push after each scan
        """
        self.engine = engine
        self.config = config or WatcherConfig()
        self.sync = sync

        if navigation is None and engine.document is not None:
            navigation = engine.document.history
        self.navigation = navigation

        self._state = WatcherState.IDLE
        self._stats = WatchdogStats()
        self._started = False
        self._disposed = False
        self._last_url = ""
        self._batches_since_scan = 0

        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: MutationObserver | None = None
        self._observed_body: DOMNode | None = None
        self._unsubscribe_navigation: Callable[[], None] | None = None
        self._settle_handle: asyncio.TimerHandle | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._periodic_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def stats(self) -> WatchdogStats:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._started and not self._disposed

    def start(self) -> Callable[[], None]:
        """
        Begin watching. Must be called from a running event loop.

        Returns:
            Idempotent disposer
        """
        if self._started:
            logger.warning("Watchdog already started")
            return self.dispose

        self._started = True
        if not self.engine.has_document:
            logger.debug("No document, watchdog inactive")
            self._disposed = True
            return self.dispose

        self._loop = asyncio.get_running_loop()

        if self.navigation is not None:
            self._last_url = self.navigation.url
            self._unsubscribe_navigation = self.navigation.subscribe(self._on_navigation)

        self._observe_body()
        self._settle_handle = self._loop.call_later(
            self.config.settle_delay, self._on_settled, ScanTrigger.INITIAL
        )
        self._periodic_task = self._loop.create_task(self._periodic_loop())

        self._emit(EventType.WATCHER_STARTED, {"url": self._last_url})
        logger.info(
            "Watchdog started",
            settle_delay=self.config.settle_delay,
            debounce_window=self.config.debounce_window,
            periodic_interval=self.config.periodic_interval,
        )
        return self.dispose

    def dispose(self) -> None:
        """Stop watching. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True

        if self._unsubscribe_navigation is not None:
            self._unsubscribe_navigation()
            self._unsubscribe_navigation = None

        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None
            self._observed_body = None

        self._cancel_settle()
        self._cancel_debounce()

        if self._periodic_task is not None:
            self._periodic_task.cancel()

        self.engine.scanner.visibility.skip_occlusion = False
        self._state = WatcherState.IDLE

        self._emit(EventType.WATCHER_STOPPED, self._stats.to_dict())
        logger.info("Watchdog stopped", **self._stats.to_dict())

    async def stop(self) -> None:
        """Dispose and wait for the periodic task to finish."""
        self.dispose()
        if self._periodic_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._periodic_task
            self._periodic_task = None

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def _on_navigation(self, url: str) -> None:
        if self._disposed or url == self._last_url:
            return

        previous, self._last_url = self._last_url, url
        self._stats.navigations += 1
        logger.debug("Navigation detected", previous=previous, url=url)

        self.engine.reset_element_registry()
        self._emit(EventType.NAVIGATION_CHANGED, {"url": url, "previous": previous})

        # The settle scan covers whatever the debounce was waiting for
        self._cancel_debounce()
        self._cancel_settle()
        assert self._loop is not None
        self._settle_handle = self._loop.call_later(
            self.config.settle_delay, self._on_settled, ScanTrigger.NAVIGATION
        )

    def _on_mutations(self, records: list[MutationRecord], observer: MutationObserver) -> None:
        if self._disposed:
            return

        if not batch_qualifies(records):
            self._stats.ignored_batches += 1
            return

        self._stats.qualifying_batches += 1
        self._batches_since_scan += 1
        self._emit(EventType.MUTATION_QUALIFIED, {"records": len(records)})

        self._cancel_debounce()
        assert self._loop is not None
        self._debounce_handle = self._loop.call_later(self.config.debounce_window, self._on_debounced)
        if self._state is not WatcherState.SCANNING:
            self._state = WatcherState.WAITING_DEBOUNCE

    def _on_settled(self, trigger: ScanTrigger) -> None:
        self._settle_handle = None
        if self._disposed:
            return
        # A full navigation may have swapped the body node
        if self.engine.document is not None and self.engine.document.body is not self._observed_body:
            self._observe_body()
        self._run_scan(trigger)

    def _on_debounced(self) -> None:
        self._debounce_handle = None
        self._run_scan(ScanTrigger.MUTATION)

    async def _periodic_loop(self) -> None:
        while not self._disposed:
            await asyncio.sleep(self.config.periodic_interval)
            if self._disposed:
                break
            self._stats.periodic_scans += 1
            self._run_scan(ScanTrigger.PERIODIC)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _run_scan(self, trigger: ScanTrigger) -> None:
        if self._disposed:
            return

        if self.engine.is_capturing:
            self._stats.skipped_triggers += 1
            self._emit(EventType.SCAN_SKIPPED, {"trigger": trigger.value})
            logger.debug("Scan in progress, trigger ignored", trigger=trigger.value)
            return

        visibility = self.engine.scanner.visibility
        threshold = self.config.occlusion_skip_threshold
        visibility.skip_occlusion = bool(threshold) and self._batches_since_scan >= threshold
        if visibility.skip_occlusion:
            self._stats.occlusion_skipped_scans += 1
        self._batches_since_scan = 0

        self._state = WatcherState.SCANNING
        started = time.perf_counter()
        try:
            elements = self.engine.capture_interactive_elements()
        finally:
            visibility.skip_occlusion = False
            self._state = (
                WatcherState.WAITING_DEBOUNCE if self._debounce_handle is not None else WatcherState.IDLE
            )

        self._stats.scans += 1
        self._stats.last_scan_duration = time.perf_counter() - started
        self._stats.last_scan_at = datetime.now()
        self._stats.last_trigger = trigger
        logger.debug(
            "Watchdog scan",
            trigger=trigger.value,
            count=len(elements),
            duration=round(self._stats.last_scan_duration, 4),
        )

        if self.sync:
            self.engine.schedule_sync()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _observe_body(self) -> None:
        if self._observer is not None:
            self._observer.disconnect()
        document = self.engine.document
        if document is None or document.body is None:
            self._observer = None
            self._observed_body = None
            return

        self._observer = MutationObserver(self._on_mutations)
        self._observer.observe(
            document.body,
            child_list=True,
            attributes=True,
            subtree=True,
            attribute_filter=OBSERVED_ATTRIBUTES,
        )
        self._observed_body = document.body

    def _cancel_settle(self) -> None:
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._state is WatcherState.WAITING_DEBOUNCE:
            self._state = WatcherState.IDLE

    def _emit(self, event_type: EventType, data: dict) -> None:
        if self.engine.event_bus is not None:
            self.engine.event_bus.emit_sync(event_type, data, source="change_watchdog")

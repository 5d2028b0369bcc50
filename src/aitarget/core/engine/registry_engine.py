"""Registry engine: the consumer-facing surface over one document."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import structlog

from aitarget.core.dom.models import (
    DESCRIPTION_ATTRIBUTE,
    TARGET_ATTRIBUTE,
    ElementDescriptor,
    InteractionType,
)
from aitarget.core.dom.registry import RegistryStore
from aitarget.core.dom.service import ElementScanner
from aitarget.core.events.types import EventType
from aitarget.core.models.config import Config
from aitarget.core.watchdog.change_watchdog import ChangeWatchdog

if TYPE_CHECKING:
    from aitarget.core.dom.document import Document
    from aitarget.core.dom.models import DOMNode
    from aitarget.core.events.bus import AsyncEventBus
    from aitarget.core.interfaces.navigation import INavigationSource
    from aitarget.core.interfaces.sync import ISyncGateway

logger = structlog.get_logger(__name__)

UpdateListener = Callable[[list[ElementDescriptor]], None]


class RegistryEngine:
    """
    Owns the registry for one document.

    The document is injected, never looked up globally; with no document
    (or a document without a body) every query returns an empty result and
    every command is a no-op.

    Only one scan runs at a time. A capture requested while a scan is in
    flight (for example from an update listener) returns the current
    registry unchanged.
    """

    def __init__(
        self,
        document: Document | None,
        config: Config | None = None,
        event_bus: AsyncEventBus | None = None,
        gateway: ISyncGateway | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            document: Page to observe
            config: Application configuration (defaults apply when omitted)
            event_bus: Optional bus receiving scan and registry events
            gateway: Optional sync gateway for pushing snapshots
        """
        self.document = document
        self.config = config or Config()
        self.event_bus = event_bus
        self.gateway = gateway

        self.scanner = ElementScanner(document, self.config.identity)
        self.registry = RegistryStore()

        self._capturing = False
        self.watchdog: ChangeWatchdog | None = None
        self._listeners: list[UpdateListener] = []
        self._sync_tasks: set[asyncio.Task[bool]] = set()
        self._stats = {
            "scans": 0,
            "skipped_scans": 0,
            "syncs_succeeded": 0,
            "syncs_failed": 0,
        }

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    @property
    def has_document(self) -> bool:
        return self.document is not None and self.document.body is not None

    @property
    def stats(self) -> dict[str, int]:
        return self._stats.copy()

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def capture_interactive_elements(self) -> list[ElementDescriptor]:
        """
        Scan the document now and replace the registry with the result.

        Returns:
            Descriptors captured by this scan, or the current registry
            contents when a scan was already running
        """
        if not self.has_document:
            return []

        if self._capturing:
            self._stats["skipped_scans"] += 1
            logger.debug("Scan already in progress, returning current registry")
            return self.registry.snapshot()

        self._capturing = True
        try:
            self._emit(EventType.SCAN_STARTED, {"url": self.document.url})
            started = time.perf_counter()

            descriptors = self.scanner.scan(is_taken=self.registry.__contains__)
            self.registry.replace(descriptors)

            duration_ms = (time.perf_counter() - started) * 1000
            self._stats["scans"] += 1
            logger.info(
                "Captured interactive elements",
                url=self.document.url,
                count=len(descriptors),
                duration_ms=round(duration_ms, 2),
            )
            self._emit(
                EventType.SCAN_COMPLETED,
                {
                    "url": self.document.url,
                    "count": len(descriptors),
                    "duration_ms": duration_ms,
                    "version": self.registry.version,
                },
            )
            self._notify_listeners()
        finally:
            self._capturing = False

        return [descriptor.copy() for descriptor in descriptors]

    def on_update(self, listener: UpdateListener) -> Callable[[], None]:
        """
        Register a callback receiving the registry snapshot after each scan.

        Returns:
            Unsubscribe function
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.registry.snapshot())
            except Exception as e:
                logger.exception("Registry update listener failed", error=str(e))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_element_registry(self) -> dict[str, ElementDescriptor]:
        """Copy of the registry keyed by target id."""
        return self.registry.as_mapping()

    def find_element_by_target(self, target_id: str) -> DOMNode | None:
        """Live node carrying the given target marker, if any."""
        if not self.has_document or not target_id:
            return None
        return next(
            (
                node
                for node in self.document.body.iter_descendants()
                if node.attributes.get(TARGET_ATTRIBUTE) == target_id
            ),
            None,
        )

    def find_elements_by_component(self, component_name: str) -> list[ElementDescriptor]:
        """Registered elements inside the named component."""
        return [d for d in self.registry.snapshot() if d.component_name == component_name]

    def find_elements_by_action(self, interaction_type: InteractionType | str) -> list[ElementDescriptor]:
        """Registered elements with the given interaction type."""
        wanted = InteractionType(interaction_type)
        return [d for d in self.registry.snapshot() if d.interaction_type is wanted]

    def find_elements_by_description(self, text: str) -> list[DOMNode]:
        """Live nodes whose ``data-ai-description`` contains ``text``."""
        if not self.has_document:
            return []
        return [
            node
            for node in self.document.body.iter_descendants()
            if text in (node.attributes.get(DESCRIPTION_ATTRIBUTE) or "")
        ]

    def describe_element(self, node: DOMNode) -> ElementDescriptor | None:
        """Descriptor for any node, computed on the fly and not registered."""
        if not self.has_document:
            return None
        return self.scanner.describe(node)

    def reset_element_registry(self) -> None:
        """Empty the registry."""
        if not self.has_document:
            return
        self.registry.reset()
        self._emit(EventType.REGISTRY_RESET, {"url": self.document.url})

    @property
    def current_path(self) -> str:
        """Path component of the document URL."""
        if self.document is None:
            return "/"
        return urlsplit(self.document.url).path or "/"

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def update_component_map(self) -> bool:
        """
        Scan, then push the result through the sync gateway.

        Returns:
            Whether the push succeeded; False without a gateway or document
        """
        if self.gateway is None or not self.has_document:
            return False
        elements = self.capture_interactive_elements()
        return await self._push(elements)

    def schedule_sync(self) -> asyncio.Task[bool] | None:
        """
        Push the current registry in the background.

        Failures are logged and never touch the registry.

        Returns:
            The background task, or None when there is nothing to push to
        """
        if self.gateway is None or not self.has_document:
            return None
        task = asyncio.get_running_loop().create_task(self._push(self.registry.snapshot()))
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)
        return task

    async def _push(self, elements: list[ElementDescriptor]) -> bool:
        assert self.gateway is not None
        path = self.current_path
        try:
            ok = await self.gateway.push(elements, path)
        except Exception as e:
            logger.exception("Sync gateway raised", error=str(e))
            ok = False

        if ok:
            self._stats["syncs_succeeded"] += 1
            self._emit(EventType.SYNC_COMPLETED, {"count": len(elements), "path": path})
        else:
            self._stats["syncs_failed"] += 1
            self._emit(EventType.SYNC_FAILED, {"count": len(elements), "path": path})
        return ok

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def start_monitoring(
        self,
        navigation: INavigationSource | None = None,
        *,
        sync: bool | None = None,
    ) -> Callable[[], None]:
        """
        Start change detection and return its disposer.

        Must be called from a running event loop.

        Args:
            navigation: Navigation capability; defaults to the document history
            sync: Push after each watcher scan; defaults to ``config.sync.enabled``

        Returns:
            Idempotent disposer stopping all monitoring
        """
        if self.watchdog is not None and self.watchdog.is_running:
            logger.info("Replacing running watchdog")
            self.watchdog.dispose()

        self.watchdog = ChangeWatchdog(
            self,
            navigation,
            config=self.config.watcher,
            sync=self.config.sync.enabled if sync is None else sync,
        )
        return self.watchdog.start()

    async def aclose(self) -> None:
        """Wait for background pushes, then close the gateway."""
        if self._sync_tasks:
            await asyncio.gather(*self._sync_tasks, return_exceptions=True)
        if self.gateway is not None:
            await self.gateway.aclose()

    def _emit(self, event_type: EventType, data: dict) -> None:
        if self.event_bus is not None:
            self.event_bus.emit_sync(event_type, data, source="registry_engine")

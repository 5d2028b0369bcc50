"""In-memory document: the DOM access capability the engine is given."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

import structlog

from aitarget.core.dom.models import COMPONENT_ATTRIBUTE, TARGET_ATTRIBUTE, DOMNode
from aitarget.core.dom.query import attribute_selector

logger = structlog.get_logger(__name__)

NavigationKind = Literal["push", "replace", "pop"]
NavigationListener = Callable[[str], None]
MutationCallback = Callable[[list["MutationRecord"], "MutationObserver"], None]


@dataclass
class Viewport:
    """Viewport size and scroll offset."""

    width: int = 1280
    height: int = 720
    scroll_x: float = 0.0
    scroll_y: float = 0.0


@dataclass
class MutationRecord:
    """One observed change, mirroring the DOM MutationRecord."""

    type: Literal["childList", "attributes"]
    target: DOMNode
    added_nodes: list[DOMNode] = field(default_factory=list)
    removed_nodes: list[DOMNode] = field(default_factory=list)
    attribute_name: str | None = None
    old_value: str | None = None


@dataclass
class _ObserverOptions:
    target: DOMNode
    child_list: bool
    attributes: bool
    subtree: bool
    attribute_filter: frozenset[str] | None

    def covers(self, record: MutationRecord) -> bool:
        if record.type == "childList" and not self.child_list:
            return False
        if record.type == "attributes":
            if not self.attributes:
                return False
            if self.attribute_filter is not None and record.attribute_name not in self.attribute_filter:
                return False
        if record.target is self.target:
            return True
        return self.subtree and self.target.contains(record.target)


class MutationObserver:
    """Batches mutation records and hands them to a callback."""

    def __init__(self, callback: MutationCallback) -> None:
        self._callback = callback
        self._registrations: list[_ObserverOptions] = []
        self._records: list[MutationRecord] = []
        self._document: Document | None = None

    def observe(
        self,
        target: DOMNode,
        *,
        child_list: bool = False,
        attributes: bool = False,
        subtree: bool = False,
        attribute_filter: list[str] | None = None,
    ) -> None:
        if target.document is None:
            raise ValueError("Cannot observe a node that is not attached to a document")
        if not child_list and not attributes:
            raise ValueError("observe() needs child_list or attributes")

        self._registrations.append(
            _ObserverOptions(
                target=target,
                child_list=child_list,
                attributes=attributes,
                subtree=subtree,
                attribute_filter=frozenset(attribute_filter) if attribute_filter else None,
            )
        )
        self._document = target.document
        target.document.add_observer(self)

    def disconnect(self) -> None:
        self._registrations.clear()
        self._records.clear()
        if self._document is not None:
            self._document.remove_observer(self)
            self._document = None

    def take_records(self) -> list[MutationRecord]:
        records, self._records = self._records, []
        return records

    def _enqueue(self, record: MutationRecord) -> bool:
        if any(reg.covers(record) for reg in self._registrations):
            self._records.append(record)
            return True
        return False

    def _deliver(self) -> None:
        records = self.take_records()
        if records:
            self._callback(records, self)


class History:
    """
    Session history of a document.

    Hosts call ``push_state``/``replace_state`` for same-document navigation and
    ``back``/``forward`` to produce popstate. Subscribers are told about every
    one of those signals with the resulting URL.
    """

    def __init__(self, url: str) -> None:
        self._entries = [url]
        self._index = 0
        self._listeners: list[NavigationListener] = []

    @property
    def url(self) -> str:
        return self._entries[self._index]

    @property
    def length(self) -> int:
        return len(self._entries)

    def subscribe(self, on_change: NavigationListener) -> Callable[[], None]:
        """Register a navigation listener; returns the unsubscribe function."""
        self._listeners.append(on_change)

        def unsubscribe() -> None:
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return unsubscribe

    def push_state(self, url: str) -> None:
        del self._entries[self._index + 1 :]
        self._entries.append(url)
        self._index += 1
        self._notify("push")

    def replace_state(self, url: str) -> None:
        self._entries[self._index] = url
        self._notify("replace")

    def back(self) -> None:
        if self._index > 0:
            self._index -= 1
            self._notify("pop")

    def forward(self) -> None:
        if self._index < len(self._entries) - 1:
            self._index += 1
            self._notify("pop")

    def _notify(self, kind: NavigationKind) -> None:
        logger.debug("History changed", kind=kind, url=self.url)
        for listener in list(self._listeners):
            try:
                listener(self.url)
            except Exception as e:
                logger.exception("Navigation listener failed", kind=kind, error=str(e))


class Document:
    """
    A page as the registry engine sees it.

    Holds the body subtree, viewport geometry, session history and the
    registered mutation observers. Mutation records are delivered in one
    batch per event loop iteration, or by ``flush_mutations()`` when no loop
    is running.
    """

    def __init__(
        self,
        url: str = "about:blank",
        *,
        title: str = "",
        body: DOMNode | None = None,
        viewport: Viewport | None = None,
    ) -> None:
        self.title = title
        self.viewport = viewport or Viewport()
        self.history = History(url)
        self._body: DOMNode | None = None
        self._observers: list[MutationObserver] = []
        self._delivery_scheduled = False
        self._hit_hints: dict[tuple[int, int], DOMNode | None] = {}
        self.body = body if body is not None else DOMNode(tag="body")

    @property
    def url(self) -> str:
        return self.history.url

    @property
    def body(self) -> DOMNode | None:
        return self._body

    @body.setter
    def body(self, node: DOMNode | None) -> None:
        if self._body is not None:
            self._body._adopt(None)
        self._body = node
        if node is not None:
            node.parent = None
            node._adopt(self)
        self._hit_hints.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_selector_all(self, selector: str) -> list[DOMNode]:
        if self._body is None:
            return []
        return self._body.query_selector_all(selector)

    def query_selector(self, selector: str) -> DOMNode | None:
        if self._body is None:
            return None
        return self._body.query_selector(selector)

    def get_element_by_id(self, element_id: str) -> DOMNode | None:
        if self._body is None:
            return None
        for node in self._body.iter_subtree():
            if node.attributes.get("id") == element_id:
                return node
        return None

    def element_from_point(self, x: float, y: float) -> DOMNode | None:
        """
        Topmost rendered node whose box contains the point.

        Paint order is approximated by (z-index, document order). Hints
        recorded by a browser bridge win over the geometric answer. Points
        outside the viewport hit nothing.
        """
        if not (0 <= x <= self.viewport.width and 0 <= y <= self.viewport.height):
            return None

        key = (round(x), round(y))
        if key in self._hit_hints:
            hinted = self._hit_hints[key]
            if hinted is None or hinted.is_connected:
                return hinted

        if self._body is None:
            return None

        best: DOMNode | None = None
        best_z = 0
        for node in self._body.iter_subtree():
            box = node.bounding_box
            if box is None or box.width <= 0 or box.height <= 0:
                continue
            if not box.contains_point(x, y):
                continue
            if not node.is_rendered():
                continue
            if node.style("visibility") == "hidden" or node.style("pointer-events") == "none":
                continue
            z = _z_index(node)
            if best is None or z >= best_z:
                best, best_z = node, z
        return best

    def record_hit(self, x: float, y: float, node: DOMNode | None) -> None:
        """Pin the result of a hit test measured by a real browser."""
        self._hit_hints[(round(x), round(y))] = node

    def clear_hit_hints(self) -> None:
        self._hit_hints.clear()

    def register_component(self, node: DOMNode, name: str) -> None:
        """
        Declare ``node`` as the root of a logical component.

        The root is also marked as target ``component-<name>``.
        """
        node.set_attribute(COMPONENT_ATTRIBUTE, name)
        node.set_attribute(TARGET_ATTRIBUTE, f"component-{name}")

    def find_component(self, name: str) -> DOMNode | None:
        return self.query_selector(attribute_selector(COMPONENT_ATTRIBUTE, name))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate(self, url: str, body: DOMNode | None = None) -> None:
        """Load a new page: optionally swap the body, then push the URL."""
        if body is not None:
            self.replace_body_content(body)
        self.history.push_state(url)

    def replace_body_content(self, new_body: DOMNode) -> None:
        """Replace the body's children with those of ``new_body``."""
        if self._body is None:
            self.body = new_body
            return
        self._body.attributes = dict(new_body.attributes)
        self._body.computed_style = dict(new_body.computed_style)
        self._body.bounding_box = new_body.bounding_box
        self._body.node_id = new_body.node_id
        self._body.replace_children(list(new_body.children))
        self._hit_hints.clear()

    # ------------------------------------------------------------------
    # Mutation observation
    # ------------------------------------------------------------------

    def add_observer(self, observer: MutationObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: MutationObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def record_child_list(
        self,
        target: DOMNode,
        added: list[DOMNode] | None = None,
        removed: list[DOMNode] | None = None,
    ) -> None:
        self._record(
            MutationRecord(
                type="childList",
                target=target,
                added_nodes=list(added or []),
                removed_nodes=list(removed or []),
            )
        )

    def record_attribute_change(self, target: DOMNode, name: str, old_value: str | None) -> None:
        self._record(
            MutationRecord(
                type="attributes",
                target=target,
                attribute_name=name,
                old_value=old_value,
            )
        )

    def _record(self, record: MutationRecord) -> None:
        queued = False
        for observer in list(self._observers):
            queued = observer._enqueue(record) or queued
        if queued:
            self._schedule_delivery()

    def _schedule_delivery(self) -> None:
        if self._delivery_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: records wait for flush_mutations()
            return
        self._delivery_scheduled = True
        loop.call_soon(self.flush_mutations)

    def flush_mutations(self) -> None:
        """Deliver every pending record batch now."""
        self._delivery_scheduled = False
        for observer in list(self._observers):
            try:
                observer._deliver()
            except Exception as e:
                logger.exception("Mutation observer callback failed", error=str(e))


def _z_index(node: DOMNode) -> int:
    """z-index of the nearest ancestor-or-self that sets one."""
    current: DOMNode | None = node
    while current is not None:
        raw = current.computed_style.get("z-index", "auto")
        try:
            return int(raw)
        except (TypeError, ValueError):
            current = current.parent
    return 0

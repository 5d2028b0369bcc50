"""Visibility classification for DOM nodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from aitarget.core.dom.models import BoundingBox, ElementPosition

if TYPE_CHECKING:
    from aitarget.core.dom.document import Document
    from aitarget.core.dom.models import DOMNode

logger = structlog.get_logger(__name__)


def _opacity_is_zero(raw: str) -> bool:
    try:
        return float(raw) == 0
    except (TypeError, ValueError):
        return False


class VisibilityClassifier:
    """
    Decides whether a node is actually visible to a user.

    A node is visible when it is rendered, has a positive box, intersects the
    viewport and is the topmost element at its visual center (or an
    ancestor/descendant of it). Checks run cheapest first; the hit test is
    the expensive part and runs last.

    Hit test results are cached per scan frame, see ``begin_frame()``.
    """

    def __init__(self, document: Document | None) -> None:
        self.document = document
        self.skip_occlusion = False
        self._hit_cache: dict[tuple[int, int], DOMNode | None] = {}
        self.hit_tests = 0

    def begin_frame(self) -> None:
        """Drop cached hit tests; call once before each scan."""
        self._hit_cache.clear()

    def is_visible(self, node: DOMNode | None) -> bool:
        """
        Check whether a node is visible.

        Args:
            node: Node to check; ``None`` or a detached node is not visible

        Returns:
            True if the node is visible and not occluded
        """
        if node is None or self.document is None or not node.is_connected:
            return False

        if not node.is_rendered():
            return False
        if node.style("visibility") == "hidden":
            return False
        if _opacity_is_zero(node.style("opacity")):
            return False

        box = node.bounding_box
        if box is None or box.width <= 0 or box.height <= 0:
            return False

        viewport = self.document.viewport
        if not box.intersects_viewport(viewport.width, viewport.height):
            return False

        if self.skip_occlusion:
            return True

        return self._is_unoccluded(node, box)

    def _is_unoccluded(self, node: DOMNode, box: BoundingBox) -> bool:
        center = box.center
        key = (round(center.x), round(center.y))
        if key in self._hit_cache:
            hit = self._hit_cache[key]
        else:
            self.hit_tests += 1
            hit = self.document.element_from_point(center.x, center.y)
            self._hit_cache[key] = hit

        if hit is None:
            return False
        return hit is node or node.contains(hit) or hit.contains(node)

    def visible_percentage(self, box: BoundingBox) -> float:
        """Share of the box inside the viewport, 0-100."""
        if box.area <= 0 or self.document is None:
            return 0.0

        viewport = self.document.viewport
        left = max(0.0, box.left)
        top = max(0.0, box.top)
        right = min(float(viewport.width), box.right)
        bottom = min(float(viewport.height), box.bottom)

        visible_area = max(0.0, right - left) * max(0.0, bottom - top)
        return visible_area / box.area * 100

    def position(self, node: DOMNode) -> ElementPosition:
        """Viewport and document-absolute position of a node."""
        box = node.bounding_box or BoundingBox(0, 0, 0, 0)
        scroll_x = self.document.viewport.scroll_x if self.document else 0.0
        scroll_y = self.document.viewport.scroll_y if self.document else 0.0
        return ElementPosition(
            viewport=box,
            absolute=box.offset(scroll_x, scroll_y),
            center=box.center,
            visible_percentage=self.visible_percentage(box),
        )

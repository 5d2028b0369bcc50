"""Data models for the interactive element registry."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from aitarget.core.dom.query import matches_selector

if TYPE_CHECKING:
    from aitarget.core.dom.document import Document

# Computed style properties that fall back to the parent's value
INHERITED_STYLES = {"visibility", "cursor", "pointer-events"}

STYLE_DEFAULTS = {
    "display": "block",
    "visibility": "visible",
    "opacity": "1",
    "pointer-events": "auto",
    "cursor": "auto",
    "z-index": "auto",
}

TARGET_ATTRIBUTE = "data-ai-target"
ACTION_ATTRIBUTE = "data-ai-action"
COMPONENT_ATTRIBUTE = "data-ai-component"
DESCRIPTION_ATTRIBUTE = "data-ai-description"


class InteractionType(str, Enum):
    """Dominant way to operate a control."""

    CLICK = "click"
    INPUT = "input"
    SELECT = "select"
    UPLOAD = "upload"
    RANGE = "range"
    COLOR = "color"
    DATE = "date"
    INTERACT = "interact"


@dataclass(frozen=True)
class Point:
    """A point in viewport coordinates."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class BoundingBox:
    """Element bounding box coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        """Get the visual center point."""
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        """Calculate area of bounding box."""
        return self.width * self.height

    def contains_point(self, x: float, y: float) -> bool:
        """Check if a point lies inside the box (edges included)."""
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def intersects_viewport(self, viewport_width: float, viewport_height: float) -> bool:
        """Check if element is within viewport."""
        return (
            self.top < viewport_height
            and self.left < viewport_width
            and self.bottom > 0
            and self.right > 0
        )

    def offset(self, dx: float, dy: float) -> BoundingBox:
        """Return the same box shifted by (dx, dy)."""
        return BoundingBox(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "top": self.top,
            "left": self.left,
            "width": self.width,
            "height": self.height,
            "bottom": self.bottom,
            "right": self.right,
        }

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> BoundingBox:
        """Create from dictionary (accepts x/y or left/top keys)."""
        return cls(
            x=data.get("x", data.get("left", 0)),
            y=data.get("y", data.get("top", 0)),
            width=data.get("width", 0),
            height=data.get("height", 0),
        )


@dataclass(frozen=True)
class ElementPosition:
    """Where an element sits on the page at scan time."""

    viewport: BoundingBox
    absolute: BoundingBox
    center: Point
    visible_percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "viewport": self.viewport.to_dict(),
            "absolute": self.absolute.to_dict(),
            "center": self.center.to_dict(),
            "visiblePercentage": self.visible_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ElementPosition:
        center = data.get("center", {})
        return cls(
            viewport=BoundingBox.from_dict(data.get("viewport", {})),
            absolute=BoundingBox.from_dict(data.get("absolute", {})),
            center=Point(center.get("x", 0), center.get("y", 0)),
            visible_percentage=data.get("visiblePercentage", 0.0),
        )


@dataclass(eq=False)
class DOMNode:
    """
    A live element in an in-memory document.

    Attribute and child mutations go through the methods below so that the
    owning document can record them for mutation observers.
    """

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str = ""
    computed_style: dict[str, str] = field(default_factory=dict)
    bounding_box: BoundingBox | None = None
    children: list[DOMNode] = field(default_factory=list)
    node_id: str = ""

    # Form control properties (the live DOM property, not the attribute)
    disabled: bool = False
    value: str | None = None
    checked: bool | None = None

    parent: DOMNode | None = field(default=None, repr=False)
    document: Document | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.tag = self.tag.lower()
        for child in self.children:
            child.parent = self

    def __repr__(self) -> str:
        return f"<{self.tag} {self.attributes!r}>"

    @property
    def id_attr(self) -> str | None:
        """Get the id attribute."""
        return self.attributes.get("id") or None

    @property
    def class_list(self) -> list[str]:
        """Get list of CSS classes."""
        class_attr = self.attributes.get("class", "")
        return class_attr.split() if class_attr else []

    @property
    def role(self) -> str | None:
        """Get ARIA role."""
        return self.attributes.get("role")

    @property
    def input_type(self) -> str | None:
        """Get input type attribute."""
        return self.attributes.get("type")

    @property
    def is_connected(self) -> bool:
        """Whether the node is currently attached to its document's body."""
        if self.document is None or self.document.body is None:
            return False
        node: DOMNode | None = self
        while node is not None:
            if node is self.document.body:
                return True
            node = node.parent
        return False

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def set_attribute(self, name: str, value: str) -> None:
        old_value = self.attributes.get(name)
        self.attributes[name] = value
        if self.document is not None:
            self.document.record_attribute_change(self, name, old_value)

    def remove_attribute(self, name: str) -> None:
        if name not in self.attributes:
            return
        old_value = self.attributes.pop(name)
        if self.document is not None:
            self.document.record_attribute_change(self, name, old_value)

    def style(self, prop: str) -> str:
        """Computed style value, following inheritance for inherited properties."""
        node: DOMNode | None = self
        while node is not None:
            if prop in node.computed_style:
                return node.computed_style[prop]
            if prop not in INHERITED_STYLES:
                break
            node = node.parent
        return STYLE_DEFAULTS.get(prop, "")

    def is_rendered(self) -> bool:
        """False when this node or an ancestor has display:none."""
        node: DOMNode | None = self
        while node is not None:
            if node.computed_style.get("display") == "none":
                return False
            node = node.parent
        return True

    def append_child(self, child: DOMNode) -> DOMNode:
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        child._adopt(self.document)
        if self.document is not None:
            self.document.record_child_list(self, added=[child])
        return child

    def remove_child(self, child: DOMNode) -> DOMNode:
        self.children.remove(child)
        child.parent = None
        if self.document is not None:
            self.document.record_child_list(self, removed=[child])
        child._adopt(None)
        return child

    def replace_children(self, children: list[DOMNode]) -> None:
        removed = list(self.children)
        for child in removed:
            child.parent = None
            child._adopt(None)
        self.children = []
        for child in children:
            child.parent = self
            self.children.append(child)
            child._adopt(self.document)
        if self.document is not None:
            self.document.record_child_list(self, added=list(children), removed=removed)

    def _adopt(self, document: Document | None) -> None:
        for node in self.iter_subtree():
            node.document = document

    def iter_subtree(self) -> Iterator[DOMNode]:
        """Yield this node and all descendants in document order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_descendants(self) -> Iterator[DOMNode]:
        it = self.iter_subtree()
        next(it)
        yield from it

    def iter_ancestors(self) -> Iterator[DOMNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def contains(self, other: DOMNode | None) -> bool:
        """DOM ``contains``: true for the node itself and any descendant."""
        while other is not None:
            if other is self:
                return True
            other = other.parent
        return False

    def text_content(self) -> str:
        parts = [node.text for node in self.iter_subtree() if node.text]
        return " ".join(parts)

    def matches(self, selector: str) -> bool:
        return matches_selector(self, selector)

    def closest(self, selector: str) -> DOMNode | None:
        node: DOMNode | None = self
        while node is not None:
            if node.matches(selector):
                return node
            node = node.parent
        return None

    def query_selector_all(self, selector: str) -> list[DOMNode]:
        return [node for node in self.iter_descendants() if node.matches(selector)]

    def query_selector(self, selector: str) -> DOMNode | None:
        for node in self.iter_descendants():
            if node.matches(selector):
                return node
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tag": self.tag,
            "node_id": self.node_id,
            "text": self.text,
            "attributes": dict(self.attributes),
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
            "children_count": len(self.children),
        }


@dataclass(frozen=True)
class Identity:
    """Result of identity assignment for one node."""

    target_id: str
    interaction_type: InteractionType


@dataclass(frozen=True)
class ElementDescriptor:
    """Snapshot of one interactive element, as stored in the registry."""

    target_id: str
    interaction_type: InteractionType
    tag_name: str
    path: str
    position: ElementPosition
    timestamp: int
    component_name: str | None = None
    element_type: str | None = None
    id: str | None = None
    class_name: str | None = None
    name: str | None = None
    href: str | None = None
    value: str | None = None
    content: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    visible: bool = True
    interactable: bool = True

    def copy(self) -> ElementDescriptor:
        """Copy whose attribute mapping is independent of this one."""
        return replace(self, attributes=dict(self.attributes))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire format."""
        return {
            "targetId": self.target_id,
            "interactionType": self.interaction_type.value,
            "componentName": self.component_name,
            "tagName": self.tag_name,
            "type": self.element_type,
            "id": self.id,
            "className": self.class_name,
            "name": self.name,
            "href": self.href,
            "value": self.value,
            "content": self.content,
            "path": self.path,
            "attributes": dict(self.attributes),
            "position": self.position.to_dict(),
            "visible": self.visible,
            "interactable": self.interactable,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ElementDescriptor:
        """Create from the camelCase wire format."""
        return cls(
            target_id=data["targetId"],
            interaction_type=InteractionType(data.get("interactionType", "interact")),
            tag_name=data.get("tagName", ""),
            path=data.get("path", ""),
            position=ElementPosition.from_dict(data.get("position", {})),
            timestamp=data.get("timestamp", 0),
            component_name=data.get("componentName"),
            element_type=data.get("type"),
            id=data.get("id"),
            class_name=data.get("className"),
            name=data.get("name"),
            href=data.get("href"),
            value=data.get("value"),
            content=data.get("content", ""),
            attributes=dict(data.get("attributes", {})),
            visible=data.get("visible", True),
            interactable=data.get("interactable", True),
        )

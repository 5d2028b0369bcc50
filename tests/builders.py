"""Builders for in-memory test documents."""

from __future__ import annotations

from typing import Any

from aitarget.core.dom.document import Document, Viewport
from aitarget.core.dom.models import BoundingBox, DOMNode


def node(
    tag: str,
    *children: DOMNode,
    text: str = "",
    box: tuple[float, float, float, float] | None = None,
    style: dict[str, str] | None = None,
    disabled: bool = False,
    value: str | None = None,
    checked: bool | None = None,
    **attrs: Any,
) -> DOMNode:
    """
    Build a DOMNode.

    Keyword attributes use underscores for hyphens (``data_testid``,
    ``aria_label``) and a trailing underscore for reserved words (``class_``).
    """
    attributes = {key.rstrip("_").replace("_", "-"): str(val) for key, val in attrs.items()}
    return DOMNode(
        tag=tag,
        attributes=attributes,
        text=text,
        computed_style=dict(style or {}),
        bounding_box=BoundingBox(*box) if box else None,
        children=list(children),
        disabled=disabled,
        value=value,
        checked=checked,
    )


def column(
    *nodes: DOMNode,
    x: float = 10,
    y: float = 10,
    width: float = 200,
    height: float = 30,
    gap: float = 10,
) -> list[DOMNode]:
    """Give nodes without a box non-overlapping boxes stacked top to bottom."""
    for n in nodes:
        if n.bounding_box is None:
            n.bounding_box = BoundingBox(x, y, width, height)
        y += height + gap
    return list(nodes)


def make_document(
    *children: DOMNode,
    url: str = "https://app.test/",
    viewport: Viewport | None = None,
) -> Document:
    """Document whose body fills the default 1280x720 viewport."""
    body = DOMNode(tag="body", bounding_box=BoundingBox(0, 0, 1280, 720), children=list(children))
    return Document(url=url, body=body, viewport=viewport)


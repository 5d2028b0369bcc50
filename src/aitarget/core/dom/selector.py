"""Structural path computation and re-resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from aitarget.core.dom.document import Document
    from aitarget.core.dom.models import DOMNode

logger = structlog.get_logger(__name__)

PATH_SEPARATOR = " > "

_SEGMENT = re.compile(
    r"""
    ^(?P<tag>[a-z][a-z0-9-]*)
    (?:\#(?P<id>.+)$
      | (?P<classes>(?:\.[^.\[:]+)*)
        (?:\[role="(?P<role>[^"]*)"\])?
        (?::nth-child\((?P<nth>\d+)\))?$
    )
    """,
    re.VERBOSE,
)


@dataclass
class PathSegment:
    tag: str
    id: str | None = None
    classes: list[str] = field(default_factory=list)
    role: str | None = None
    nth: int | None = None

    def matches(self, node: DOMNode) -> bool:
        if node.tag != self.tag:
            return False
        if self.id is not None:
            return node.id_attr == self.id
        if node.class_list != self.classes:
            return False
        return node.role == self.role


class PathComputer:
    """
    Builds ``>``-joined ancestor chains that locate a node.

    The walk goes from the node up to (not including) body. An ancestor with
    an id ends the walk since the id is taken as unique. Otherwise each step
    is ``tag.class1.class2``, then ``[role="..."]``, then ``:nth-child(k)``
    when the parent has several children with the same tag (k counts only
    those same-tag siblings).

    Paths are advisory: they are not guaranteed unique, nor stable across
    DOM restructuring.
    """

    def compute_path(self, node: DOMNode) -> str:
        """
        Compute the structural path of a node.

        Args:
            node: Node to locate

        Returns:
            Path string, empty if the node is the body or detached
        """
        body = node.document.body if node.document else None
        parts: list[str] = []
        current: DOMNode | None = node

        while current is not None and current is not body:
            if current.id_attr:
                parts.append(f"{current.tag}#{current.id_attr}")
                break

            selector = current.tag
            classes = current.class_list
            if classes:
                selector += "." + ".".join(classes)

            role = current.role
            if role:
                selector += f'[role="{role}"]'

            if current.parent is not None:
                same_tag = [c for c in current.parent.children if c.tag == current.tag]
                if len(same_tag) > 1:
                    selector += f":nth-child({same_tag.index(current) + 1})"

            parts.append(selector)
            current = current.parent

        parts.reverse()
        return PATH_SEPARATOR.join(parts)

    def parse(self, path: str) -> list[PathSegment]:
        """Split a path into segments; raises ValueError on foreign syntax."""
        segments = []
        for raw in path.split(PATH_SEPARATOR):
            match = _SEGMENT.match(raw.strip())
            if match is None:
                raise ValueError(f"Not a path segment: {raw!r}")
            classes = match.group("classes") or ""
            nth = match.group("nth")
            segments.append(
                PathSegment(
                    tag=match.group("tag"),
                    id=match.group("id"),
                    classes=[c for c in classes.split(".") if c],
                    role=match.group("role"),
                    nth=int(nth) if nth else None,
                )
            )
        return segments

    def resolve(self, document: Document | None, path: str) -> DOMNode | None:
        """
        Find the node a path points at, using the same sibling semantics.

        Args:
            document: Document to search
            path: Path previously produced by ``compute_path``

        Returns:
            The node, or None when the path no longer resolves
        """
        if document is None or document.body is None or not path:
            return None

        try:
            segments = self.parse(path)
        except ValueError as e:
            logger.debug("Unresolvable path", path=path, error=str(e))
            return None

        first = segments[0]
        if first.id is not None:
            current = document.get_element_by_id(first.id)
            if current is None or current.tag != first.tag:
                return None
            segments = segments[1:]
        else:
            current = document.body

        for segment in segments:
            current = self._step(current, segment)
            if current is None:
                return None
        return current

    def _step(self, parent: DOMNode, segment: PathSegment) -> DOMNode | None:
        same_tag = [c for c in parent.children if c.tag == segment.tag]
        if segment.nth is not None:
            if segment.nth > len(same_tag):
                return None
            candidate = same_tag[segment.nth - 1]
            return candidate if segment.matches(candidate) else None
        for candidate in same_tag:
            if segment.matches(candidate):
                return candidate
        return None

"""Minimal CSS selector matching for in-memory DOM nodes.

Supports selector lists of compound selectors (``tag``, ``*``, ``#id``,
``.class``, ``[attr]``, ``[attr=value]``, ``[attr="value"]``) joined by the
descendant and child combinators. That covers marker lookups, component
scoping and form fields; anything else raises ``ValueError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aitarget.core.dom.models import DOMNode

_TOKEN = re.compile(
    r"""
    (?P<ws>\s*>\s*|\s+)
  | (?P<tag>\*|[a-zA-Z][a-zA-Z0-9-]*)
  | \#(?P<id>[\w-]+)
  | \.(?P<cls>[\w-]+)
  | \[\s*(?P<attr>[\w:-]+)\s*(?:=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[\w-]+))\s*)?\]
    """,
    re.VERBOSE,
)


@dataclass
class CompoundSelector:
    tag: str | None = None
    id: str | None = None
    classes: list[str] = field(default_factory=list)
    # (name, expected value or None for presence)
    attributes: list[tuple[str, str | None]] = field(default_factory=list)

    def matches(self, node: DOMNode) -> bool:
        if self.tag is not None and self.tag != "*" and node.tag != self.tag:
            return False
        if self.id is not None and node.attributes.get("id") != self.id:
            return False
        if self.classes:
            present = set(node.class_list)
            if not all(c in present for c in self.classes):
                return False
        for name, expected in self.attributes:
            if name not in node.attributes:
                return False
            if expected is not None and node.attributes[name] != expected:
                return False
        return True


@dataclass
class ComplexSelector:
    # compounds[i] is joined to compounds[i + 1] by combinators[i] (" " or ">")
    compounds: list[CompoundSelector]
    combinators: list[str]

    def matches(self, node: DOMNode) -> bool:
        return self._match_from(node, len(self.compounds) - 1)

    def _match_from(self, node: DOMNode | None, index: int) -> bool:
        if node is None or not self.compounds[index].matches(node):
            return False
        if index == 0:
            return True
        combinator = self.combinators[index - 1]
        if combinator == ">":
            return self._match_from(node.parent, index - 1)
        ancestor = node.parent
        while ancestor is not None:
            if self._match_from(ancestor, index - 1):
                return True
            ancestor = ancestor.parent
        return False


def _parse_complex(text: str) -> ComplexSelector:
    compounds: list[CompoundSelector] = []
    combinators: list[str] = []
    current = CompoundSelector()
    has_content = False
    pos = 0
    text = text.strip()

    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None:
            raise ValueError(f"Unsupported selector syntax: {text!r}")
        pos = match.end()
        kind = match.lastgroup
        if match.group("ws") is not None:
            if not has_content:
                raise ValueError(f"Dangling combinator in selector: {text!r}")
            compounds.append(current)
            combinators.append(">" if ">" in match.group("ws") else " ")
            current = CompoundSelector()
            has_content = False
            continue

        has_content = True
        if kind == "tag":
            current.tag = match.group("tag").lower()
        elif match.group("id") is not None:
            current.id = match.group("id")
        elif match.group("cls") is not None:
            current.classes.append(match.group("cls"))
        elif match.group("attr") is not None:
            value = match.group("dq")
            if value is None:
                value = match.group("sq")
            if value is None:
                value = match.group("bare")
            current.attributes.append((match.group("attr").lower(), value))

    if not has_content:
        raise ValueError(f"Empty selector: {text!r}")
    compounds.append(current)
    return ComplexSelector(compounds=compounds, combinators=combinators)


@lru_cache(maxsize=256)
def parse_selector(selector: str) -> tuple[ComplexSelector, ...]:
    """Parse a selector list into its complex selectors."""
    parts = [part for part in selector.split(",") if part.strip()]
    if not parts:
        raise ValueError("Empty selector list")
    return tuple(_parse_complex(part) for part in parts)


def matches_selector(node: DOMNode, selector: str) -> bool:
    """Element.matches() for the supported selector subset."""
    return any(complex_sel.matches(node) for complex_sel in parse_selector(selector))


def attribute_selector(name: str, value: str) -> str:
    """Build an ``[name="value"]`` selector, quoting the value."""
    return f'[{name}="{value}"]'

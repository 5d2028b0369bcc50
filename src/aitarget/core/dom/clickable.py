"""Interactability checks and interaction-type classification."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from aitarget.core.dom.models import ACTION_ATTRIBUTE, InteractionType

if TYPE_CHECKING:
    from aitarget.core.dom.models import DOMNode
    from aitarget.core.dom.visibility import VisibilityClassifier

logger = structlog.get_logger(__name__)

# Fixed allow-list of what counts as an interactive element
INTERACTIVE_TAGS = frozenset({"button", "a", "input", "select", "textarea"})

INTERACTIVE_ROLES = frozenset(
    {
        "button",
        "link",
        "checkbox",
        "radio",
        "tab",
        "menuitem",
        "switch",
        "combobox",
        "searchbox",
    }
)


def is_interactive_candidate(node: DOMNode) -> bool:
    """Whether the node is on the interactive allow-list."""
    if node.tag in INTERACTIVE_TAGS:
        return True
    if node.get_attribute("role") in INTERACTIVE_ROLES:
        return True
    return node.has_attribute(ACTION_ATTRIBUTE)


class InteractionClassifier:
    """
    Decides whether a visible node accepts input, and how.

    Interaction type is resolved from a priority table:
    1. Tag name (input elements by their ``type``)
    2. ARIA role
    3. Inline click handler
    4. Computed ``cursor: pointer``
    5. Generic ``interact`` fallback
    """

    CLICK_TAGS = {"button", "a", "summary", "details", "label"}

    SELECT_TAGS = {"select", "option"}

    # Map of input types to interaction types; anything else is text input
    INPUT_TYPE_MAP = {
        "checkbox": InteractionType.CLICK,
        "radio": InteractionType.CLICK,
        "submit": InteractionType.CLICK,
        "button": InteractionType.CLICK,
        "reset": InteractionType.CLICK,
        "image": InteractionType.CLICK,
        "file": InteractionType.UPLOAD,
        "range": InteractionType.RANGE,
        "color": InteractionType.COLOR,
        "date": InteractionType.DATE,
        "datetime-local": InteractionType.DATE,
        "month": InteractionType.DATE,
        "time": InteractionType.DATE,
        "week": InteractionType.DATE,
    }

    ROLE_MAP = {
        "button": InteractionType.CLICK,
        "link": InteractionType.CLICK,
        "checkbox": InteractionType.CLICK,
        "radio": InteractionType.CLICK,
        "switch": InteractionType.CLICK,
        "textbox": InteractionType.INPUT,
        "searchbox": InteractionType.INPUT,
        "listbox": InteractionType.SELECT,
        "combobox": InteractionType.SELECT,
        "slider": InteractionType.RANGE,
    }

    CLICK_HANDLERS = {"onclick"}

    def __init__(self, visibility: VisibilityClassifier) -> None:
        self.visibility = visibility

    def is_interactive_candidate(self, node: DOMNode) -> bool:
        """Whether the node matches the interactive allow-list."""
        return is_interactive_candidate(node)

    def is_interactable(self, node: DOMNode | None) -> bool:
        """
        Determine if a node currently accepts input.

        Args:
            node: DOM node to check

        Returns:
            True if the node is visible and not disabled in any way
        """
        if not self.visibility.is_visible(node):
            return False

        if node.disabled:
            return False
        if node.style("pointer-events") == "none":
            return False
        if node.get_attribute("aria-disabled") == "true":
            return False
        # The property can lag behind the attribute
        if node.has_attribute("disabled"):
            return False

        return True

    def classify_interaction(self, node: DOMNode) -> InteractionType:
        """
        Classify the dominant interaction type of a node.

        Args:
            node: DOM node to classify

        Returns:
            The InteractionType from the priority table
        """
        tag = node.tag

        if tag in self.CLICK_TAGS:
            return InteractionType.CLICK

        if tag == "input":
            input_type = (node.input_type or "text").lower()
            return self.INPUT_TYPE_MAP.get(input_type, InteractionType.INPUT)

        if tag == "textarea":
            return InteractionType.INPUT

        if tag in self.SELECT_TAGS:
            return InteractionType.SELECT

        role = node.role
        if role and role.lower() in self.ROLE_MAP:
            return self.ROLE_MAP[role.lower()]

        if any(attr.lower() in self.CLICK_HANDLERS for attr in node.attributes):
            return InteractionType.CLICK

        if node.style("cursor") == "pointer":
            return InteractionType.CLICK

        return InteractionType.INTERACT

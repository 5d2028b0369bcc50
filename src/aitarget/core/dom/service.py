"""Full-page scan pipeline producing element descriptors."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from aitarget.core.dom.clickable import InteractionClassifier, is_interactive_candidate
from aitarget.core.dom.identity import IdentityAssigner, parse_interaction
from aitarget.core.dom.models import (
    ACTION_ATTRIBUTE,
    COMPONENT_ATTRIBUTE,
    TARGET_ATTRIBUTE,
    ElementDescriptor,
    Identity,
)
from aitarget.core.dom.selector import PathComputer
from aitarget.core.dom.visibility import VisibilityClassifier

if TYPE_CHECKING:
    from aitarget.core.dom.document import Document
    from aitarget.core.dom.models import DOMNode
    from aitarget.core.models.config import IdentityConfig

logger = structlog.get_logger(__name__)

FORM_CONTROL_TAGS = {"input", "textarea", "select"}
CHECKABLE_TYPES = {"checkbox", "radio"}
CONTENT_LIMIT = 100


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class ElementScanner:
    """
    Runs one scan over a document.

    For each node matching the interactive allow-list:
    visibility -> interactability -> identity -> path -> descriptor.
    The scan is synchronous and reads the document once, so a caller
    running on an event loop publishes either all of it or nothing.
    """

    def __init__(
        self,
        document: Document | None,
        identity_config: IdentityConfig | None = None,
        clock: Callable[[], int] = _monotonic_ms,
    ) -> None:
        self.document = document
        self.visibility = VisibilityClassifier(document)
        self.classifier = InteractionClassifier(self.visibility)
        self.identity = IdentityAssigner(self.classifier, identity_config)
        self.paths = PathComputer()
        self._clock = clock

    def scan(self, is_taken: Callable[[str], bool] | None = None) -> list[ElementDescriptor]:
        """
        Collect descriptors for every visible, interactable candidate.

        Args:
            is_taken: Extra collision check for random fallback ids
                (typically membership in the live registry)

        Returns:
            Descriptors in document order, unique by target id
        """
        document = self.document
        if document is None or document.body is None:
            return []

        self.visibility.begin_frame()
        candidates = [node for node in document.body.iter_descendants() if is_interactive_candidate(node)]

        # Ids already persisted anywhere on the page stay with their nodes
        reserved = {
            node.attributes[TARGET_ATTRIBUTE]
            for node in document.body.iter_descendants()
            if node.attributes.get(TARGET_ATTRIBUTE)
        }

        descriptors: list[ElementDescriptor] = []
        seen: set[str] = set()
        skipped = 0

        for node in candidates:
            if not self.classifier.is_interactable(node):
                skipped += 1
                continue

            identity = self.identity.assign_identity(node, reserved, is_taken)
            if identity.target_id in seen:
                logger.warning(
                    "Duplicate target marker, keeping first element",
                    target_id=identity.target_id,
                    tag=node.tag,
                )
                continue
            seen.add(identity.target_id)
            reserved.add(identity.target_id)

            descriptors.append(self._build_descriptor(node, identity, visible=True, interactable=True))

        logger.debug(
            "Scan complete",
            url=document.url,
            candidates=len(candidates),
            captured=len(descriptors),
            skipped=skipped,
            hit_tests=self.visibility.hit_tests,
        )
        return descriptors

    def describe(self, node: DOMNode) -> ElementDescriptor | None:
        """
        Describe any node on the fly without registering or marking it.

        Returns:
            A descriptor with freshly computed visibility flags, or None when
            there is no document or the node is detached
        """
        if self.document is None or not node.is_connected:
            return None

        self.visibility.begin_frame()
        visible = self.visibility.is_visible(node)
        interactable = visible and self.classifier.is_interactable(node)

        target_id = node.get_attribute(TARGET_ATTRIBUTE) or self.identity.derive_target_id(node)
        interaction = parse_interaction(
            node.get_attribute(ACTION_ATTRIBUTE)
        ) or self.classifier.classify_interaction(node)

        return self._build_descriptor(
            node,
            Identity(target_id=target_id, interaction_type=interaction),
            visible=visible,
            interactable=interactable,
        )

    def _build_descriptor(
        self,
        node: DOMNode,
        identity: Identity,
        *,
        visible: bool,
        interactable: bool,
    ) -> ElementDescriptor:
        attributes = self._attributes(node)
        component = node.closest(f"[{COMPONENT_ATTRIBUTE}]")

        return ElementDescriptor(
            target_id=identity.target_id,
            interaction_type=identity.interaction_type,
            tag_name=node.tag,
            path=self.paths.compute_path(node),
            position=self.visibility.position(node),
            timestamp=self._clock(),
            component_name=component.get_attribute(COMPONENT_ATTRIBUTE) if component else None,
            element_type=node.get_attribute("type") or None,
            id=node.id_attr,
            class_name=node.get_attribute("class") or None,
            name=node.get_attribute("name") or None,
            href=node.get_attribute("href") or None,
            value=attributes.get("value"),
            content=node.text_content().strip()[:CONTENT_LIMIT],
            attributes=attributes,
            visible=visible,
            interactable=interactable,
        )

    def _attributes(self, node: DOMNode) -> dict[str, str]:
        """Attribute snapshot plus live value/checked for form controls."""
        attributes = dict(node.attributes)

        if node.tag in FORM_CONTROL_TAGS:
            value = node.value if node.value is not None else node.attributes.get("value", "")
            attributes["value"] = value

            input_type = (node.input_type or "").lower()
            if node.tag == "input" and input_type in CHECKABLE_TYPES:
                checked = node.checked if node.checked is not None else node.has_attribute("checked")
                attributes["checked"] = "true" if checked else "false"

        return attributes

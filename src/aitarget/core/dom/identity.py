"""Stable target-id and interaction-type assignment."""

from __future__ import annotations

import random
import re
import string
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

import structlog

from aitarget.core.dom.models import (
    ACTION_ATTRIBUTE,
    TARGET_ATTRIBUTE,
    Identity,
    InteractionType,
)
from aitarget.core.models.config import IdentityConfig

if TYPE_CHECKING:
    from aitarget.core.dom.clickable import InteractionClassifier
    from aitarget.core.dom.models import DOMNode

logger = structlog.get_logger(__name__)

TARGET_PREFIX = "ai-target-"

# Text content shorter than this is used as an id source
MAX_TEXT_LENGTH = 20

BASE36 = string.digits + string.ascii_lowercase

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9\-_]")
_HYPHENS = re.compile(r"-{2,}")
_INVALID_ATTRIBUTE_CHARS = re.compile(r"[^A-Za-z0-9\-_]")


def normalize_slug(text: str) -> str:
    """
    Turn free text into an id slug.

    Whitespace runs become one hyphen, the result is lowercased, characters
    outside ``[a-z0-9-_]`` are dropped, repeated hyphens collapse and
    leading/trailing hyphens are trimmed.
    """
    slug = _WHITESPACE.sub("-", text.strip()).lower()
    slug = _DISALLOWED.sub("", slug)
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


def sanitize_attribute_slug(value: str) -> str:
    """Keep an attribute value's case, replacing characters outside ``[A-Za-z0-9-_]`` with hyphens."""
    slug = _INVALID_ATTRIBUTE_CHARS.sub("-", value.strip())
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


class IdentityAssigner:
    """
    Derives human-legible, collision-checked target ids.

    Ids are persisted on the node (``data-ai-target``/``data-ai-action``), so a
    node that already carries markers keeps them, whether they came from an
    earlier scan or from a build-time injector.
    """

    def __init__(
        self,
        classifier: InteractionClassifier,
        config: IdentityConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.classifier = classifier
        self.config = config or IdentityConfig()
        self._rng = rng or random.Random()

    def assign_identity(
        self,
        node: DOMNode,
        reserved: set[str] | None = None,
        is_taken: Callable[[str], bool] | None = None,
    ) -> Identity:
        """
        Assign (or recover) a node's identity.

        Args:
            node: Node to identify
            reserved: Ids already claimed by other nodes; a derived id is
                made unique against this set
            is_taken: Extra collision check applied to random fallback ids

        Returns:
            Identity with target id and interaction type
        """
        reserved = reserved if reserved is not None else set()

        target_id = node.get_attribute(TARGET_ATTRIBUTE)
        if not target_id:
            target_id = self.derive_target_id(node, reserved, is_taken)
            node.set_attribute(TARGET_ATTRIBUTE, target_id)

        raw_action = node.get_attribute(ACTION_ATTRIBUTE)
        interaction_type = parse_interaction(raw_action)
        if interaction_type is None:
            interaction_type = self.classifier.classify_interaction(node)
            if raw_action is None:
                node.set_attribute(ACTION_ATTRIBUTE, interaction_type.value)

        return Identity(target_id=target_id, interaction_type=interaction_type)

    def derive_target_id(
        self,
        node: DOMNode,
        reserved: set[str] | None = None,
        is_taken: Callable[[str], bool] | None = None,
    ) -> str:
        """Compute a fresh target id without touching the node."""
        reserved = reserved if reserved is not None else set()

        slug = next(self._descriptive_slugs(node), None)
        if slug is not None:
            return self._make_unique(f"{TARGET_PREFIX}{slug}", reserved)

        return self._random_id(node, reserved, is_taken)

    def _descriptive_slugs(self, node: DOMNode) -> Iterator[str]:
        # Authored identifiers keep their case; free text is normalized
        sources = [
            (node.get_attribute("id"), sanitize_attribute_slug),
            (node.get_attribute("data-testid"), sanitize_attribute_slug),
            (node.get_attribute("aria-label"), normalize_slug),
            (node.get_attribute("name"), sanitize_attribute_slug),
            (node.get_attribute("placeholder"), normalize_slug),
        ]
        text = node.text_content().strip()
        if text and len(text) < MAX_TEXT_LENGTH:
            sources.append((text, normalize_slug))

        for source, to_slug in sources:
            if not source:
                continue
            slug = to_slug(source)
            if slug:
                yield slug

    def _make_unique(self, candidate: str, reserved: set[str]) -> str:
        if candidate not in reserved:
            return candidate
        suffix = 2
        while f"{candidate}-{suffix}" in reserved:
            suffix += 1
        unique = f"{candidate}-{suffix}"
        logger.debug("Target id collision resolved", base=candidate, target_id=unique)
        return unique

    def _random_id(
        self,
        node: DOMNode,
        reserved: set[str],
        is_taken: Callable[[str], bool] | None,
    ) -> str:
        length = self.config.random_suffix_length
        candidate = ""
        for _ in range(self.config.max_collision_retries):
            suffix = "".join(self._rng.choice(BASE36) for _ in range(length))
            candidate = f"{TARGET_PREFIX}{node.tag}-{suffix}"
            if candidate not in reserved and not (is_taken and is_taken(candidate)):
                return candidate

        # Retries exhausted: widen the suffix until it is free
        while candidate in reserved or (is_taken and is_taken(candidate)):
            candidate += self._rng.choice(BASE36)
        logger.warning("Random target id retries exhausted", target_id=candidate)
        return candidate


def parse_interaction(raw: str | None) -> InteractionType | None:
    if not raw:
        return None
    try:
        return InteractionType(raw.strip().lower())
    except ValueError:
        return None

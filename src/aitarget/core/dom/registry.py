"""In-memory registry of interactive element descriptors."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aitarget.core.dom.models import ElementDescriptor

logger = structlog.get_logger(__name__)


class RegistryStore:
    """
    Single source of truth for the current set of descriptors.

    ``replace()`` builds the new mapping completely before swapping it in
    with one assignment, so readers only ever see the old or the new
    registry. Readers get copies, never the stored objects.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ElementDescriptor] = {}
        self._version = 0

    @property
    def version(self) -> int:
        """Number of replacements and resets so far."""
        return self._version

    def replace(self, descriptors: Iterable[ElementDescriptor]) -> None:
        """Atomically replace the whole registry."""
        fresh: dict[str, ElementDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.target_id in fresh:
                logger.warning("Duplicate target id dropped", target_id=descriptor.target_id)
                continue
            fresh[descriptor.target_id] = descriptor.copy()

        self._entries = fresh
        self._version += 1

    def get(self, target_id: str) -> ElementDescriptor | None:
        descriptor = self._entries.get(target_id)
        return descriptor.copy() if descriptor else None

    def snapshot(self) -> list[ElementDescriptor]:
        """Copies of all descriptors, in scan order."""
        return [d.copy() for d in self._entries.values()]

    def as_mapping(self) -> dict[str, ElementDescriptor]:
        """Copies keyed by target id."""
        return {key: d.copy() for key, d in self._entries.items()}

    def target_ids(self) -> set[str]:
        return set(self._entries)

    def reset(self) -> None:
        """Clear all entries."""
        self._entries = {}
        self._version += 1
        logger.debug("Registry reset")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._entries

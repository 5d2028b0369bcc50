"""Sync gateway interface."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from aitarget.core.dom.models import ElementDescriptor
    from aitarget.core.sync.models import ComponentMap


@runtime_checkable
class ISyncGateway(Protocol):
    """Contract for pushing registry snapshots to a collaborating service."""

    async def fetch(self) -> ComponentMap:
        """
        Retrieve the previously stored component map.

        Returns:
            The stored map, or an empty baseline when unavailable
        """
        ...

    async def push(self, elements: Sequence[ElementDescriptor], current_path: str) -> bool:
        """
        Merge the runtime elements into the stored map and send it.

        Returns:
            True on success; failures are logged, never raised
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...

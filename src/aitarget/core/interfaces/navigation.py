"""Navigation capability interface."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

NavigationListener = Callable[[str], None]


@runtime_checkable
class INavigationSource(Protocol):
    """Contract for anything that reports client-side URL changes."""

    @property
    def url(self) -> str:
        """Current URL."""
        ...

    def subscribe(self, on_change: NavigationListener) -> Callable[[], None]:
        """
        Register a listener called with the new URL on every change.

        Push, replace and pop transitions are all reported.

        Returns:
            Unsubscribe function
        """
        ...

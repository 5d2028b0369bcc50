"""Core interfaces (protocols) for injected capabilities."""

from aitarget.core.interfaces.navigation import INavigationSource, NavigationListener
from aitarget.core.interfaces.sync import ISyncGateway

__all__ = [
    "INavigationSource",
    "ISyncGateway",
    "NavigationListener",
]

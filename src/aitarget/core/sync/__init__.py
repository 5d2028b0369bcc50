"""Synchronisation with the component-map service."""

from aitarget.core.sync.gateway import HttpSyncGateway
from aitarget.core.sync.models import COMPONENT_MAP_VERSION, ComponentMap

__all__ = [
    "COMPONENT_MAP_VERSION",
    "ComponentMap",
    "HttpSyncGateway",
]

"""Registry engine."""

from aitarget.core.engine.registry_engine import RegistryEngine, UpdateListener

__all__ = ["RegistryEngine", "UpdateListener"]

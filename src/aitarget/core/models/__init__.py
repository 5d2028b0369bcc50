"""Core data models."""

from aitarget.core.models.config import (
    Config,
    IdentityConfig,
    LogConfig,
    SyncConfig,
    WatcherConfig,
)

__all__ = [
    "Config",
    "IdentityConfig",
    "LogConfig",
    "SyncConfig",
    "WatcherConfig",
]

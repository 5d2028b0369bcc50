"""Event type definitions."""

from enum import Enum


class EventType(str, Enum):
    """All event types in the system."""

    # Scan lifecycle
    SCAN_STARTED = "scan.started"
    SCAN_COMPLETED = "scan.completed"
    SCAN_SKIPPED = "scan.skipped"

    # Registry
    REGISTRY_RESET = "registry.reset"

    # Change detection
    NAVIGATION_CHANGED = "navigation.changed"
    MUTATION_QUALIFIED = "mutation.qualified"
    WATCHER_STARTED = "watcher.started"
    WATCHER_STOPPED = "watcher.stopped"

    # Sync gateway
    SYNC_COMPLETED = "sync.completed"
    SYNC_FAILED = "sync.failed"

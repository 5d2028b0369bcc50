"""Data models for the change-detection watchdog."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class WatcherState(str, Enum):
    """What the watchdog is doing right now."""

    IDLE = "idle"
    SCANNING = "scanning"
    WAITING_DEBOUNCE = "waiting_debounce"


class ScanTrigger(str, Enum):
    """Why a scan was started."""

    INITIAL = "initial"
    NAVIGATION = "navigation"
    MUTATION = "mutation"
    PERIODIC = "periodic"


@dataclass
class WatchdogStats:
    """Counters describing watchdog activity."""

    scans: int = 0
    skipped_triggers: int = 0
    qualifying_batches: int = 0
    ignored_batches: int = 0
    navigations: int = 0
    periodic_scans: int = 0
    occlusion_skipped_scans: int = 0
    last_scan_duration: float = 0.0
    last_scan_at: datetime | None = None
    last_trigger: ScanTrigger | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "scans": self.scans,
            "skipped_triggers": self.skipped_triggers,
            "qualifying_batches": self.qualifying_batches,
            "ignored_batches": self.ignored_batches,
            "navigations": self.navigations,
            "periodic_scans": self.periodic_scans,
            "occlusion_skipped_scans": self.occlusion_skipped_scans,
            "last_scan_duration": self.last_scan_duration,
            "last_scan_at": self.last_scan_at.isoformat() if self.last_scan_at else None,
            "last_trigger": self.last_trigger.value if self.last_trigger else None,
        }

"""Change detection for the element registry."""

from aitarget.core.watchdog.change_watchdog import OBSERVED_ATTRIBUTES, ChangeWatchdog, batch_qualifies
from aitarget.core.watchdog.models import ScanTrigger, WatcherState, WatchdogStats
from aitarget.core.watchdog.navigation import EventBusNavigationSource

__all__ = [
    "OBSERVED_ATTRIBUTES",
    "ChangeWatchdog",
    "EventBusNavigationSource",
    "ScanTrigger",
    "WatchdogStats",
    "WatcherState",
    "batch_qualifies",
]

"""Browser bridges."""

from aitarget.plugins.browsers.playwright_plugin import PlaywrightBridge, PlaywrightBrowser

__all__ = [
    "PlaywrightBridge",
    "PlaywrightBrowser",
]

"""Package exceptions."""


class AitargetError(Exception):
    """Base class for errors reported to users of the command line."""


class PageLoadError(AitargetError):
    """The browser could not open or mirror the requested page."""

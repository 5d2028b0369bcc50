"""aitarget - runtime registry of interactive page elements for automation agents."""

__version__ = "0.2.0"

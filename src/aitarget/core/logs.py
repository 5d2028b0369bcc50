"""structlog setup for command-line entry points."""

from __future__ import annotations

import logging

import structlog

from aitarget.core.models.config import LogConfig


def configure_logging(config: LogConfig | None = None) -> None:
    """
    Configure structlog once per process.

    Library code only calls ``structlog.get_logger``; embedding applications
    keep whatever configuration they already have.

    Args:
        config: Level and renderer selection
    """
    config = config or LogConfig()
    level = logging.getLevelName(config.level)

    renderer: structlog.typing.Processor
    if config.structured:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

"""structlog configuration shared by every module."""

from __future__ import annotations

import logging

import structlog

from opsconsole.config import settings

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure structlog once; later calls are ignored."""
    global _configured
    if _configured:
        return

    level_name = (level or settings.console_log_level).upper()
    min_level = logging.getLevelName(level_name)
    if not isinstance(min_level, int):
        min_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    return structlog.get_logger(name)

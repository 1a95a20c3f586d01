from __future__ import annotations

import logging
from typing import Dict, Optional, TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from unipatch.settings.models import LoggingSettings


PRIMARY_LOGGERS = ("unipatch",)


def _level_map() -> Dict[str, int]:
    return {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
        "disabled": logging.CRITICAL + 1,
    }


def configure_logging(settings: Optional["LoggingSettings"] = None) -> None:
    """Apply LoggingSettings to the stdlib loggers backing structlog."""
    from unipatch.settings.models import LoggingSettings

    if settings is None:
        settings = LoggingSettings()

    levels = _level_map()
    default_level = levels.get(settings.default_level.value, logging.WARNING)

    for logger_name in PRIMARY_LOGGERS:
        logging.getLogger(logger_name).setLevel(default_level)

    for logger_name, level in settings.enabled_loggers.items():
        logging.getLogger(logger_name).setLevel(levels.get(level.value, default_level))


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(colors=False),
    ],
)

logger: structlog.BoundLogger = structlog.get_logger("unipatch")

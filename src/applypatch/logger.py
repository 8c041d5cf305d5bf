from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from applypatch.settings import LoggingSettings

LOGGER_NAME = "applypatch"

_handler: Optional[logging.Handler] = None


def configure_logging(settings: Optional["LoggingSettings"] = None) -> None:
    """
    Route stdlib records to stderr and apply level overrides.
    stdout is left alone; it carries the patch result.
    """
    global _handler
    from applypatch.settings import LoggingSettings

    settings = settings or LoggingSettings()

    root_logger = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        # sys.stderr may have been replaced since the last call.
        _handler.setStream(sys.stderr)
    if _handler not in root_logger.handlers:
        root_logger.addHandler(_handler)

    logging.getLogger(LOGGER_NAME).setLevel(settings.default_level.to_logging())
    for name, level in settings.enabled_loggers.items():
        logging.getLogger(name).setLevel(level.to_logging())


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(),
    ],
)

logger: structlog.BoundLogger = structlog.get_logger(LOGGER_NAME)

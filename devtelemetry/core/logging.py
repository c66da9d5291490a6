# devtelemetry/core/logging.py
"""
Application-wide logging configuration.

The core itself only ever calls `logging.getLogger(__name__)`; this module is
the one place that decides where records go and how they look.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO.
NOISY_LOGGERS = ("uvicorn.access",)


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the service.

    Args:
        level: Logging level name (e.g. "INFO", "DEBUG", "WARNING").
            Unknown names fall back to INFO.

    Installs a single stdout handler, so calling it twice does not duplicate
    output.
    """
    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    if log_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

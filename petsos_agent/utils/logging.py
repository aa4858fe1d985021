"""
Logging helpers.
"""

import logging
import sys
from typing import Optional

from ..config import get_settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_loggers: dict[str, logging.Logger] = {}


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get or create a named logger writing to stderr.

    Args:
        name: Dotted logger name, e.g. ``petsos.webhook``.
        level: Optional level name; defaults to ``Settings.log_level``.
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel((level or get_settings().log_level).upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

    logger.propagate = False
    _loggers[name] = logger
    return logger

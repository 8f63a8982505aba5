"""Logging setup."""

import logging
from typing import Optional

from .config import config


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging for command-line runs.

    The library only emits records through module loggers; applications that
    embed JsonDB configure handlers themselves.
    """
    level_name = (level or config.log_level or "WARNING").upper()
    resolved = getattr(logging, level_name, logging.WARNING)
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    logging.basicConfig(level=resolved, format=fmt, force=True)

"""Utility functions."""

import logging
from typing import Optional


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


class PackageLogHandler(logging.StreamHandler):
    """Stream handler installed by ``configure_logging``."""


def configure_logging(name: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """Configure a logger with a single stream handler.

    Calling it again only changes the level; no duplicate handlers are added.

    Args:
        name: Logger name. The root logger when None.
        level: Level name such as "DEBUG" or "warning".

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    if not any(isinstance(handler, PackageLogHandler) for handler in logger.handlers):
        handler = PackageLogHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger

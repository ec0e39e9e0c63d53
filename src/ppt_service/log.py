"""
Logging configuration for the conversion service.

Uses loguru; modules import ``logger`` from loguru directly and this module
only installs the sink.
"""

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default handler with a single stderr sink.

    Should be called once at process startup.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, colorize=True)
    logger.debug("Logging initialized (level={})", level)

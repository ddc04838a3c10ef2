"""Logging setup using loguru."""

import sys

from loguru import logger

from threadboard.config import get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(log_level: str | None = None) -> None:
    """
    Send log records to stderr at the given level.

    Args:
        log_level: Override the configured level (DEBUG, INFO, WARNING, ERROR)
    """
    level = (log_level or get_settings().log_level).upper()

    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)

"""
Logging configuration for the liar detection game.

Every module logs through a child of the `liars_lie` logger, which owns the
only console handler. Changing the package logger's level (for instance from
the CLI's --log-level) therefore applies to modules imported earlier too.
"""

import logging
import os
import sys
from typing import Optional


PACKAGE_LOGGER = 'liars_lie'
LOG_FORMAT = '[%(asctime)s] %(name)s %(levelname)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_level(level: Optional[str]) -> int:
    """Map a level name to its value, falling back to LOG_LEVEL then INFO."""
    if level is None:
        level = os.getenv('LOG_LEVEL', 'INFO')
    return getattr(logging, level.upper(), logging.INFO)


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(console_handler)
        logger.setLevel(_resolve_level(None))
    return logger


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get the logger of a game module.

    Args:
        name: Module name (usually __name__), under the liars_lie package
        level: Optional level for this module only. By default it follows the package level

    Returns:
        Logger that writes through the package's console handler
    """
    _package_logger()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(_resolve_level(level))
    return logger


def set_level(level: str):
    """Change the level of every game logger that does not set its own."""
    _package_logger().setLevel(_resolve_level(level))

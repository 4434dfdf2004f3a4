"""
Logging setup for ShelfSpine.

All modules log through loguru's global logger; this only decides
where records go and at which level.
"""

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())

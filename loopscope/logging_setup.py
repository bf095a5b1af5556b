from __future__ import annotations
import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> <cyan>{name}</cyan>: {message}"

def configure_logging(level: str = "WARNING") -> int:
    """Replace loguru's sinks with a single stderr sink at ``level``.

    Call once, early, from the command line entry point. Returns the sink id.
    """
    logger.remove()
    return logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)

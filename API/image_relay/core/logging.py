"""
Logging configuration for the image relay service.
"""

import logging
import sys


def setup_logging(level: str | int = logging.INFO, component_name: str = "image-relay") -> logging.Logger:
    """
    Configure the root logger once for the whole process.

    Args:
        level: Logging level name or number (DEBUG, INFO, WARNING, ...)
        component_name: Tag written in front of every line
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    format_string = f"[%(asctime)s] [{component_name.upper()}] %(levelname)s %(name)s - %(message)s"
    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logger = logging.getLogger(component_name)
    logger.info(f"Logging initialized (level={logging.getLevelName(level)})")
    return logger

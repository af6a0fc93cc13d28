"""Minimal logging utilities for Pincel.

Provides a simple get_logger function that wraps the standard library logging.

Example:
    >>> from pincel.utils.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.debug("Resolved state %r", "root")
"""

from __future__ import annotations

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given name.

    Returns a standard library logger with the "pincel." prefix.

    Args:
        name: Logger name (typically __name__)

    Returns:
        logging.Logger instance

    Example:
        >>> logger = get_logger("mymodule")
        >>> logger.name
        'pincel.mymodule'
    """
    if not (name == "pincel" or name.startswith("pincel.")):
        name = f"pincel.{name}"
    return logging.getLogger(name)

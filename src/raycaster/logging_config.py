"""Logging setup for the raycaster package.

Every module logs through ``logging.getLogger(__name__)``, so all records
flow into the ``src.raycaster`` logger. This module attaches console and
optional file output to that logger. Calling setup_logging() again swaps
out the handlers it installed before; handlers added by the application
are left alone.

Example:
    >>> import logging
    >>> from src.raycaster.logging_config import setup_logging
    >>> logger = setup_logging(logging.DEBUG)
    >>> logger.name
    'src.raycaster'
"""

import logging
import sys
from typing import Optional, Union

PACKAGE_LOGGER = "src.raycaster"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Handlers owned by setup_logging(), replaced on every call
_installed_handlers: list[logging.Handler] = []


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level!r}")
    return resolved


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure output for the raycaster logger namespace.

    Args:
        level: Logging level as a number or a name such as "DEBUG".
        log_file: Optional path; the file is truncated and receives the
            same records as the console.

    Returns:
        The configured package logger.

    Raises:
        ValueError: If level is an unknown level name.
    """
    resolved = _resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolved)

    while _installed_handlers:
        handler = _installed_handlers.pop()
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _installed_handlers.append(handler)

    logger.debug(f"Logging configured at {logging.getLevelName(resolved)}")
    return logger

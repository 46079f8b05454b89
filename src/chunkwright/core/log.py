# log.py
# SPDX-License-Identifier: MIT
"""Logging for chunkwright.

The chunkers log through child loggers of ``chunkwright``: WARNING for
degraded output (an unmet sentence floor, skipped code node groups) and
DEBUG for recursion descent and batch progress. The package logger carries
a NullHandler so nothing is printed until :func:`configure_logging` (or
:meth:`chunkwright.core.config.LoggingConfig.apply`) attaches a handler.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "DEFAULT_FORMAT",
    "get_logger",
    "configure_logging",
]

PACKAGE_LOGGER_NAME = "chunkwright"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Name given to the one stream handler configure_logging owns per logger.
_HANDLER_NAME = "chunkwright-stream"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``name``'s logger, or the package logger when omitted."""
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def _level_number(level: int | str) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.strip().upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown logging level {level!r}.")
    return number


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    fmt: str | None = None,
    datefmt: str | None = None,
    propagate: bool | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Logger:
    """Send chunkwright log records to a stream.

    Repeated calls reconfigure the same handler (stream, format and level)
    instead of adding another one.

    Args:
        level (int | str): Level number or name such as ``"DEBUG"``.
        stream (TextIO | None): Destination; ``sys.stderr`` by default.
        fmt (str | None): Record format; :data:`DEFAULT_FORMAT` by default.
        datefmt (str | None): ``asctime`` format.
        propagate (bool | None): Pass records on to ancestor loggers.
            ``None`` leaves propagation on, which keeps pytest's ``caplog``
            working.
        logger_name (str): Logger to configure.

    Returns:
        logging.Logger: The configured logger.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    logger = get_logger(logger_name)
    logger.setLevel(_level_number(level))
    logger.propagate = True if propagate is None else bool(propagate)

    handler = next((h for h in logger.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.set_name(_HANDLER_NAME)
        logger.addHandler(handler)
    else:
        handler.setStream(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt))
    return logger

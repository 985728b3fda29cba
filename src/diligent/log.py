"""Package-wide logging helpers.

A NullHandler is installed on the ``diligent`` logger so library use stays
quiet until an application (or the CLI) configures a handler.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

PACKAGE_LOGGER_NAME = "diligent"
DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def configure_logging(
    level: int | str = logging.WARNING,
    stream: Optional[IO[str]] = None,
    fmt: Optional[str] = None,
) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Calling it again replaces the handler rather than stacking another one.
    """

    logger = get_logger()
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_diligent_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler._diligent_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger

"""Logging setup; everything goes to stderr because stdout carries audio."""
from __future__ import annotations

import logging
import sys
from typing import TextIO

__all__ = ["configure_logging"]

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: int | str = logging.WARNING,
    *,
    name: str = "blipmachine",
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure and return the package logger.

    Calling again replaces the handler, so tests and repeated CLI runs in one
    process do not stack duplicate output.
    """

    logger = logging.getLogger(name)
    for existing in list(logger.handlers):
        if getattr(existing, "_blipmachine", False):
            logger.removeHandler(existing)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._blipmachine = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
    return logger

"""Run logger construction.

Components never look a logger up by name; the CLI builds one per run and
passes it down.
"""

from __future__ import annotations

import itertools
import logging
import sys
from typing import TextIO

LOG_FORMAT = "[%(levelname)s] %(message)s"

_run_ids = itertools.count(1)


def build_logger(debug: bool = False, stream: TextIO | None = None) -> logging.Logger:
    """Return a fresh logger writing to `stream` (stderr by default).

    The logger is not registered with the logging manager and does not
    propagate, so separate runs in one process do not share handlers.
    """

    logger = logging.Logger(f"codex_review.run{next(_run_ids)}")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def null_logger() -> logging.Logger:
    """A logger that discards everything; the default for library callers."""

    logger = logging.Logger("codex_review.null")
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger

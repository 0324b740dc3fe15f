"""Logging configuration using loguru.

Stdlib ``logging`` records from the shell modules and from httpx/anyio are
re-emitted through loguru, so there is one sink and one format.  The sink is
stderr: stdout belongs to pipeline output and the tool-mode envelope.

Human mode gets the coloured format.  Tool mode gets a plain one, since the
caller is usually a program capturing stderr.
"""

from __future__ import annotations

import inspect
import logging
import sys
from typing import TextIO

from loguru import logger

HUMAN_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
PLAIN_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level} {name}:{line} {message}"

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")
"""Third-party loggers held at WARNING whatever the shell level is."""


def _caller_depth() -> int:
    """Depth, counted from the handler frame, of the code that issued the record."""
    frame = inspect.currentframe().f_back
    depth = 0
    while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
        frame = frame.f_back
        depth += 1
    return depth


class _InterceptHandler(logging.Handler):
    """Forward stdlib records to loguru, keeping the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=_caller_depth(), exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "WARNING", *, plain: bool = False, sink: TextIO | None = None) -> None:
    """Make loguru the only log sink.

    Called by the CLI once per invocation, after settings are loaded.
    ``plain`` selects the uncoloured format used in tool mode; ``sink``
    defaults to ``sys.stderr``.
    """
    level = level.upper()

    logger.remove()
    logger.add(
        sink or sys.stderr,
        level=level,
        format=PLAIN_FORMAT if plain else HUMAN_FORMAT,
        colorize=False if plain else None,
    )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging initialised (level={}, plain={})", level, plain)

"""Logging setup for the puzzle generator and solvers."""

from __future__ import annotations

import logging
from typing import Optional, Union


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Install one compact stream handler on the root logger.

    ``level`` may be a ``logging`` constant or a name such as ``"debug"``;
    unknown names fall back to INFO. Generator phases and finished puzzles
    log at INFO, while every discarded board or abandoned start logs at
    DEBUG.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for an engine module; the root gets the default handler on first use."""

    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name or "onestroke")

"""
Logging System - Centralized logging management.

Provides colored console logging and optional file logging with log rotation.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import colorlog

ROOT_LOGGER = "signalrelayer"

CONSOLE_FORMAT = (
    "%(log_color)s%(asctime)s | %(levelname)-8s | %(name)s%(reset)s | %(message)s"
)
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

_handlers: list[logging.Handler] = []


def resolve_level(level: int | str) -> int:
    """Turn a level name such as "debug" into a logging level."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(level: int | str = "INFO", log_file: str | None = None) -> None:
    """
    Configure the relayer's loggers.

    Calling it again replaces the handlers installed by the previous call.
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in _handlers:
        root.removeHandler(handler)
        handler.close()
    _handlers.clear()

    root.setLevel(logging.DEBUG)
    root.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LOG_COLORS
        )
    )
    console_handler.setLevel(resolve_level(level))
    _handlers.append(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        _handlers.append(file_handler)

    for handler in _handlers:
        root.addHandler(handler)

    root.debug("Logging initialized (level=%s, file=%s)", level, log_file or "-")


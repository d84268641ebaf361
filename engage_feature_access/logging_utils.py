"""Logging configuration helpers for the engage-access CLI."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "engage_feature_access"


def _close_handlers(logger: logging.Logger) -> None:
    """Detach and close all handlers currently bound to the logger."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def configure_logging(*, log_file: Path | None, verbose: bool) -> logging.Logger:
    """Configure console and optional file logging and return the package logger.

    Warnings always reach stderr; ``verbose`` lowers the threshold to DEBUG.
    The log file, when given, is truncated so each run has an isolated history.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    _close_handlers(logger)

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    logger.propagate = False

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_path = log_file.expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)
    return logger


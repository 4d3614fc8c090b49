"""
Logging Configuration
Sets up the package logger for the application.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_FILE_ENV = "MQ_TUI_LOG"


def setup_logging(
    level: int = logging.INFO,
    log_file: str | None = None,
    *,
    to_stderr: bool = False,
) -> logging.Logger:
    """
    Configures the logger for the 'mqtui' namespace.

    The interactive UI owns the terminal, so nothing is written to the
    console unless ``to_stderr`` is set (one-shot print mode). Without a log
    file or stderr target records are dropped.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to. Falls back to $MQ_TUI_LOG.
        to_stderr: Also emit records on stderr.
    """
    logger = logging.getLogger("mqtui")
    logger.setLevel(level)
    logger.propagate = False

    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    if to_stderr:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    log_file = log_file or os.environ.get(LOG_FILE_ENV) or None
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.debug("Logging initialized.")
    return logger


def parse_level(name: str | None) -> int:
    """Map a level name like ``"debug"`` to its numeric value (default INFO)."""
    if not name:
        return logging.INFO
    value = logging.getLevelName(str(name).strip().upper())
    return value if isinstance(value, int) else logging.INFO

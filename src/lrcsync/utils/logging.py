"""Logging for lrcsync runs.

Console lines are colored by level with click so warnings about unmatched
files stand out in a long run. The optional log file gets plain text.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

LEVEL_COLORS = {
    logging.DEBUG: "bright_black",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}

PLAIN_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LevelColorFormatter(logging.Formatter):
    """Formatter that styles each record with the color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        return click.style(text, fg=color) if color else text


def setup_logging(
    level: str = "INFO", log_file: Optional[Path] = None, verbose: bool = False
) -> logging.Logger:
    """Configure the ``lrcsync`` logger for a run and return it."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    # HTTP client chatter drowns out per-file progress
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    logger = logging.getLogger("lrcsync")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    fmt = VERBOSE_FORMAT if verbose else PLAIN_FORMAT

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(LevelColorFormatter(fmt))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "lrcsync") -> logging.Logger:
    return logging.getLogger(name)

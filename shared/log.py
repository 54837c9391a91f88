#!/usr/bin/env python3
"""
mnotify Logging Configuration

Centralized logging setup for consistent formatting across the project.
Logs always go to stderr so command output on stdout stays clean; an
optional file handler is added when MNOTIFY_LOG_FILE is set.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Resolving homeserver")
    logger.error("Request failed", extra={"user_id": "@alice:example.org"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional
import os


ROOT_LOGGER = "mnotify"


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for terminal output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class GenericFormatter(logging.Formatter):
    """Plain formatter that prefixes Matrix context passed through ``extra``"""

    def format(self, record: logging.LogRecord) -> str:
        context = []

        if hasattr(record, 'user_id'):
            context.append(f"user={record.user_id}")
        if hasattr(record, 'room_id'):
            context.append(f"room={record.room_id}")
        if hasattr(record, 'homeserver'):
            context.append(f"hs={record.homeserver}")

        message = super().format(record)
        if context:
            return f"[{' '.join(context)}] {message}"
        return message


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module.

    Loggers outside the ``mnotify`` hierarchy are nested beneath it so a
    single call to configure_logging() covers the whole program.

    Args:
        name: Usually __name__ from the calling module

    Examples:
        logger = get_logger(__name__)
        logger.debug("GET %s", url, extra={"homeserver": base_url})
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(verbosity: int = 0, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``mnotify`` logger. Safe to call more than once.

    Args:
        verbosity: Number of -v flags (0 warnings, 1 info, 2+ debug)
        level: Explicit level name; MNOTIFY_LOG_LEVEL wins over both
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_get_log_level(verbosity, level))

    # Clear existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _add_console_handler(logger, colored=True)
    log_file = os.getenv("MNOTIFY_LOG_FILE")
    if log_file:
        _add_file_handler(logger, Path(log_file).expanduser())

    logger.propagate = False
    return logger


def _get_log_level(verbosity: int, level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    level = os.getenv("MNOTIFY_LOG_LEVEL") or level
    if level:
        return getattr(logging, level.upper(), logging.WARNING)

    return _LEVELS.get(verbosity, logging.DEBUG)


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add stderr handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stderr)

    if colored and _supports_color():
        formatter = ColoredFormatter(fmt=fmt, datefmt='%H:%M:%S')
    else:
        formatter = GenericFormatter(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger, log_file: Path) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)

    formatter = GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if the error stream supports color output"""

    # stderr must be a terminal
    if not (hasattr(sys.stderr, "isatty") and sys.stderr.isatty()):
        return False

    # TERM should not be dumb
    if os.getenv("TERM", "") == "dumb":
        return False

    # Windows-specific check
    if sys.platform == "win32":
        # On modern Windows terminals, ANSI colors are supported
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode" or "WindowsTerminal" in os.getenv("TERM", "")

    return True

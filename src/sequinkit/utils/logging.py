"""Centralized logging utilities for SequinKit.

Provides a single place to configure logging and fetch namespaced loggers.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"

# Log rotation settings
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> None:
    """Configure logging for the 'sequinkit' namespace.

    Args:
        level: Logging level for the application logger
        log_file: Optional path for log file output
        max_bytes: Maximum size per log file before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)

    Notes:
        - Root logger kept at WARNING to suppress third-party noise
        - 'sequinkit' logger uses the requested level
        - Console handler uses concise format; file handler (if any) is detailed at DEBUG
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)

    app_logger = logging.getLogger("sequinkit")
    app_logger.setLevel(level)
    # Avoid duplicate logs if called multiple times
    for h in list(app_logger.handlers):
        app_logger.removeHandler(h)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    app_logger.addHandler(console)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            app_logger.addHandler(file_handler)
            # The file handler wants DEBUG even when the console is quieter
            app_logger.setLevel(min(level, logging.DEBUG))
        except OSError as e:
            import warnings
            warnings.warn(f"Failed to create log file {log_file}: {e}")

    app_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return a namespaced logger under 'sequinkit' root."""
    base = logging.getLogger("sequinkit")
    return base.getChild(name)


def level_from_verbosity(verbose: int, default: str = "WARNING") -> int:
    """Map a -v count (or a config level name) to a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return LEVEL_NAMES.get(str(default).upper(), logging.WARNING)


class LogTemplates:
    """Standard log message templates shared by the commands."""

    # Command lifecycle
    COMMAND_START = "Starting {command}: {description}"
    COMMAND_SUCCESS = "Completed {command} in {duration:.1f}s"

    # Regions
    REGIONS_LOADED = "Loaded {count:,} regions from {path}"
    REGION_CALIBRATION = (
        "Calibrating {name} ({region}) mean_coverage={observed:.2f} "
        "target_coverage={target:.2f} retain_fraction={fraction:.4f}"
    )
    REGION_AT_TARGET = "Region {name} ({region}) has no sequin coverage; nothing to retain"

    # Files
    FILE_CREATED = "Created output file: {path}"
    INDEX_CREATED = "Created index: {path}"

    # Processing statistics
    FILTERING_STATS = "Filtered: {kept:,} kept, {removed:,} removed ({percent:.1f}% pass rate)"

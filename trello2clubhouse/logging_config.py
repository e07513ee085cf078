"""Centralized logging configuration for trello2clubhouse."""

from __future__ import annotations

import logging
import sys

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """Configure the ``trello2clubhouse`` logger.

    Console output goes to stderr without timestamps so the per-card status
    table stays readable. A file handler with timestamps is added when
    ``log_file`` is given.

    The status table is logged at INFO on ``trello2clubhouse.status`` and
    stays visible at WARNING and ERROR too.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR). Unknown names fall back to INFO.
        log_file: Optional path of a log file written in addition to the console.

    Returns:
        The configured package logger.

    Example:
        >>> setup_logging("DEBUG")
        >>> setup_logging("INFO", "migration.log")
    """
    numeric_level = LEVELS.get(level.upper(), logging.INFO)
    logger = logging.getLogger("trello2clubhouse")
    logger.setLevel(numeric_level)

    # The per-card status table is shown even when only errors are requested
    logging.getLogger("trello2clubhouse.status").setLevel(min(numeric_level, logging.INFO))

    # Re-running setup (e.g. in tests) must not stack handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger

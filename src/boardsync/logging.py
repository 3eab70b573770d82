"""Logging configuration for boardsync."""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "boardsync"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so repeated setup replaces them
_HANDLER_FLAG = "_boardsync_handler"


def level_for(verbose: int) -> int:
    """Map a verbosity count to a logging level (0=WARNING, 1=INFO, 2+=DEBUG)."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def _build_handlers(verbose: int, log_file: Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if verbose > 0:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_FLAG, True)
    return handlers


def setup_logging(verbose: int = 0, log_file: Path | None = None) -> logging.Logger:
    """Configure the ``boardsync`` logger from settings.

    Safe to call once per engine: handlers from an earlier call are closed
    and replaced rather than stacked. HTTP request logs from httpx are only
    shown at verbosity 3 and above.

    Args:
        verbose: Verbosity level (0=off, 1=INFO, 2+=DEBUG)
        log_file: Optional path to write logs to file (at least INFO)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            logger.removeHandler(handler)
            handler.close()

    if verbose == 0 and log_file is None:
        return logger

    level = level_for(verbose)
    if log_file is not None:
        level = min(level, logging.INFO)
    logger.setLevel(level)
    for handler in _build_handlers(verbose, log_file):
        logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose >= 3 else logging.WARNING)

    logger.info("boardsync logging at %s", logging.getLevelName(level))
    return logger

"""
Logging configuration for the security feed aggregator.

Uses loguru for console output and optional rotating file logs.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from secfeed_aggregation.config import get_config

# Client libraries that log every request through the stdlib at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "apscheduler.executors.default")


def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    rotation: Optional[str] = None,
    retention: Optional[str] = None,
    format: Optional[str] = None,
) -> None:
    """Configure the logger with console and file handlers.

    A handler is added for the file only when file logging is enabled in the
    configuration or an explicit ``log_file`` is passed.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, etc.)
        log_file: Path to log file
        rotation: Log rotation setting (e.g., "100 MB", "1 day")
        retention: Log retention setting (e.g., "30 days", "1 week")
        format: Log format string
    """
    log_config = get_config().logging

    level = level or log_config.level
    file_enabled = log_config.file_enabled or log_file is not None
    log_file = log_file or log_config.file_path
    rotation = rotation or log_config.rotation
    retention = retention or log_config.retention
    format = format or log_config.format

    _logger.remove()

    if log_config.console_enabled:
        _logger.add(
            sys.stderr,
            format=format,
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if file_enabled:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        _logger.add(
            log_file,
            format=format,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None):
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Logger instance
    """
    if name:
        return _logger.bind(name=name)
    return _logger


def debug(msg: str, *args, **kwargs):
    """Log a debug message."""
    _logger.debug(msg, *args, **kwargs)


def info(msg: str, *args, **kwargs):
    """Log an info message."""
    _logger.info(msg, *args, **kwargs)


def warning(msg: str, *args, **kwargs):
    """Log a warning message."""
    _logger.warning(msg, *args, **kwargs)


def error(msg: str, *args, **kwargs):
    """Log an error message."""
    _logger.error(msg, *args, **kwargs)


def exception(msg: str, *args, **kwargs):
    """Log an exception with traceback."""
    _logger.exception(msg, *args, **kwargs)


logger = _logger

__all__ = [
    "setup_logger",
    "get_logger",
    "logger",
    "debug",
    "info",
    "warning",
    "error",
    "exception",
]

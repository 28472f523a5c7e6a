"""Structured logging configuration for the EasyVinted publisher.

This module provides colored console logging and rotating file logging
with timing helpers used around browser and queue operations.
"""

import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import colorlog


CONSOLE_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "easyvinted.log"


def _resolve_level(level: Optional[str]) -> int:
    """Map a level name to a logging constant, falling back to INFO."""
    if level is not None:
        level_str = level.upper()
    else:
        level_str = os.environ.get('LOG_LEVEL', 'INFO').upper()
    return getattr(logging, level_str, logging.INFO)


def _setup_console_handler(level: int) -> logging.Handler:
    """Create the colored console handler.

    Args:
        level: Logging level

    Returns:
        Configured console handler
    """
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    formatter = colorlog.ColoredFormatter(
        CONSOLE_FORMAT,
        datefmt=DATE_FORMAT,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    )
    console_handler.setFormatter(formatter)
    return console_handler


def _setup_file_handler(level: int, log_dir: Optional[Path] = None) -> logging.Handler:
    """Create and configure rotating file handler.

    Args:
        level: Logging level
        log_dir: Directory for log files (default: EASYVINTED_LOG_DIR or logs/)

    Returns:
        Configured rotating file handler
    """
    if log_dir is None:
        env_dir = os.environ.get('EASYVINTED_LOG_DIR')
        if env_dir:
            log_dir = Path(env_dir)
        else:
            project_root = Path(__file__).parent.parent.parent
            log_dir = project_root / "logs"

    log_dir.mkdir(parents=True, exist_ok=True)

    # Rotating file handler: max 10MB, keep 5 backup files
    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return file_handler


def get_logger(name: str, log_dir: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """Get or create a logger with console and file handlers.

    Args:
        name: Logger name (typically __name__ from calling module)
        log_dir: Directory for log files (default: logs/)
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
              If None, uses LOG_LEVEL environment variable, defaulting to INFO.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure once per logger name
    if not logger.handlers:
        log_level = _resolve_level(level)
        logger.setLevel(log_level)
        logger.addHandler(_setup_console_handler(log_level))
        logger.addHandler(_setup_file_handler(log_level, log_dir))
        logger.propagate = False

    return logger


def log_performance(logger: logging.Logger, operation: str, duration: float) -> None:
    """Log how long an operation took.

    Args:
        logger: Logger instance
        operation: Name of the operation
        duration: Duration in seconds
    """
    logger.info(f"Performance: {operation} completed in {duration:.3f}s")


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str):
    """Context manager to automatically log operation execution time.

    Args:
        logger: Logger instance
        operation: Name of the operation

    Usage:
        with log_execution_time(logger, "publication batch"):
            await processor.run()
    """
    logger.debug(f"Starting: {operation}")
    start_time = time.time()

    try:
        yield
    finally:
        log_performance(logger, operation, time.time() - start_time)


def set_log_level(logger: logging.Logger, level: str) -> None:
    """Change the log level of a logger and all its handlers.

    Args:
        logger: Logger instance
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_upper = level.upper()
    log_level = getattr(logging, level_upper, logging.INFO)

    logger.setLevel(log_level)
    for handler in logger.handlers:
        handler.setLevel(log_level)

    logger.debug(f"Log level changed to {level_upper}")


def set_package_log_level(level: str) -> None:
    """Apply a log level to every easyvinted logger created so far."""
    for name in list(logging.Logger.manager.loggerDict):
        if name == "easyvinted" or name.startswith("easyvinted."):
            logger = logging.getLogger(name)
            if logger.handlers:
                set_log_level(logger, level)


def log_exception(logger: logging.Logger, operation: str, exception: Exception) -> None:
    """Log an exception with context.

    Args:
        logger: Logger instance
        operation: Name of the operation that failed
        exception: The exception that was raised
    """
    logger.error(f"Failed: {operation}: {exception}", exc_info=True)

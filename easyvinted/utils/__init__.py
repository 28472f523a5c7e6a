"""Utility modules for configuration, logging, errors and timestamps."""

from .config import AppConfig, FailurePolicy, get_config, load_config, reset_config
from .logger import (
    get_logger,
    log_exception,
    log_execution_time,
    log_performance,
    set_log_level,
    set_package_log_level,
)
from .timestamps import format_timestamp, get_utc_now, parse_timestamp

__all__ = [
    # Configuration
    "AppConfig",
    "FailurePolicy",
    "get_config",
    "load_config",
    "reset_config",
    # Logging
    "get_logger",
    "log_exception",
    "log_execution_time",
    "log_performance",
    "set_log_level",
    "set_package_log_level",
    # Timestamps
    "format_timestamp",
    "get_utc_now",
    "parse_timestamp",
]

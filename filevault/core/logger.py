"""
@file: logger.py
@description:
This module provides a unified logging system for the FileVault service, supporting:
- Color-coded console output for different log levels
- Timestamps rendered in a configurable timezone
- Consistent logging format across the application
- Configurable log levels based on environment settings

@dependencies:
- logging: Standard Python logging module
- colorama: For cross-platform colored terminal text
- pytz: For rendering timestamps in the configured timezone

@notes:
- Loggers are created once per component name and never propagate to the root logger
- The default level and timezone come from LOG_LEVEL / LOG_TIMEZONE environment variables;
  configure_logging() re-applies them from Settings at startup
"""

import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional

import pytz
from colorama import Back, Fore, Style, init

# Initialize colorama
init()

DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEFAULT_LOG_TIMEZONE = os.getenv("LOG_TIMEZONE", "Europe/London")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%d/%m/%Y %H:%M:%S"

# Every logger handed out by setup_logger, so levels can be changed later
_loggers: Dict[str, logging.Logger] = {}


class ColoredFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to log messages based on level.

    The record itself is left untouched so that other handlers attached to
    the same logger still see the plain message.
    """

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.YELLOW,
        logging.WARNING: Fore.LIGHTRED_EX,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.WHITE + Back.RED,
    }

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: str = DATE_FORMAT,
                 timezone: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.timezone = _resolve_timezone(timezone or DEFAULT_LOG_TIMEZONE)
        self.use_color = use_color

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        moment = datetime.fromtimestamp(record.created, tz=pytz.UTC).astimezone(self.timezone)
        return moment.strftime(datefmt or self.datefmt or DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record with appropriate color based on its level.

        Args:
            record: The log record to format

        Returns:
            str: The colored formatted log message
        """
        message = super().format(record)
        if not self.use_color:
            return message
        color = self.COLORS.get(record.levelno, "")
        return f"{color}{message}{Style.RESET_ALL}"


def _resolve_timezone(name: str):
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def get_console_handler(timezone: Optional[str] = None) -> logging.StreamHandler:
    """
    Create and configure a console handler with colored output.

    Colors are only emitted when stdout is a terminal.

    Returns:
        logging.StreamHandler: Configured console handler
    """
    console_handler = logging.StreamHandler(sys.stdout)
    formatter = ColoredFormatter(
        LOG_FORMAT,
        datefmt=DATE_FORMAT,
        timezone=timezone,
        use_color=sys.stdout.isatty(),
    )
    console_handler.setFormatter(formatter)
    return console_handler


def _numeric_level(level: str) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    return numeric_level


def setup_logger(name: str = "filevault", level: Optional[str] = None) -> logging.Logger:
    """
    Set up and configure a logger with colored output.

    This is the main function that should be called to create loggers
    throughout the application.

    Args:
        name: The name of the logger
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
               If None, uses the default from environment settings

    Returns:
        logging.Logger: Configured logger instance
    """
    numeric_level = _numeric_level(level or DEFAULT_LOG_LEVEL)

    logger = logging.getLogger(name)

    # Only add handlers if this logger doesn't have any
    if not logger.handlers:
        logger.setLevel(numeric_level)
        logger.addHandler(get_console_handler())
        logger.propagate = False

    _loggers[name] = logger
    return logger


def configure_logging(level: str, timezone: str) -> None:
    """
    Apply the configured level and timezone to every logger created so far.

    Args:
        level: The logging level name
        timezone: A tz database name, e.g. "Europe/London"
    """
    numeric_level = _numeric_level(level)
    for logger in _loggers.values():
        logger.setLevel(numeric_level)
        for handler in logger.handlers:
            if isinstance(handler.formatter, ColoredFormatter):
                handler.formatter.timezone = _resolve_timezone(timezone)


def log_request_details(logger: logging.Logger, request: Any, response_time: float, status_code: int) -> None:
    """
    Log details about an HTTP request and its response.

    Args:
        logger: The logger to use
        request: The request object (expected to have method and url attributes)
        response_time: The time taken to process the request in seconds
        status_code: The HTTP status code of the response
    """
    method = getattr(request, "method", "UNKNOWN")
    url = getattr(request, "url", "UNKNOWN")
    message = f"{method} {url} completed with status {status_code} in {response_time:.3f}s"

    if status_code >= 500:
        logger.error(message)
    elif status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)


# Create default application logger
logger = setup_logger()


__all__ = ["setup_logger", "configure_logging", "logger", "log_request_details", "ColoredFormatter"]

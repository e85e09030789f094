"""
Structured logging system for init-database.

Provides named loggers with console and file outputs, the engine's
seven log levels, and message-number logging so every record carries a
stable message ID.
"""

import itertools
import logging
import sys
from pathlib import Path
from typing import Dict, Optional
from datetime import datetime
import json

from . import PRODUCT_ID
from .errors import InvalidLogLevelError
from .messages import MESSAGE_ID_PREFIX, format_message

TRACE = 5
FATAL = 50
PANIC = 60

# Log level names accepted by set_log_level, most verbose first.
LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": FATAL,
    "PANIC": PANIC,
}

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(logging.WARNING, "WARN")
logging.addLevelName(FATAL, "FATAL")
logging.addLevelName(PANIC, "PANIC")


def is_valid_level_name(level_name: str) -> bool:
    return level_name in LEVELS


def level_number(level_name: str) -> int:
    """
    Map a level name to its numeric logging level.

    Raises:
        InvalidLogLevelError: If the name is not a supported level
    """
    if not is_valid_level_name(level_name):
        raise InvalidLogLevelError(level_name)
    return LEVELS[level_name]


def level_name(number: int) -> str:
    """
    Map a numeric logging level back to its level name.

    Raises:
        InvalidLogLevelError: If the number is not one of LEVELS
    """
    for name, value in LEVELS.items():
        if value == number:
            return name
    raise InvalidLogLevelError(str(number))


def level_for_message(message_number: int) -> int:
    """Numeric level implied by a message number's range."""
    if message_number < 1000:
        return TRACE
    if message_number < 2000:
        return logging.DEBUG
    if message_number < 3000:
        return logging.INFO
    if message_number < 4000:
        return logging.WARNING
    if message_number < 5000:
        return logging.ERROR
    if message_number < 6000:
        return FATAL
    return PANIC


class StructuredLogger:
    """
    Named logger with support for console and file outputs.
    """

    def __init__(
        self,
        name: str = "initdatabase",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
        product_id: int = PRODUCT_ID,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (TRACE, DEBUG, INFO, WARN, ERROR, FATAL, PANIC)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
            product_id: Product ID embedded in message IDs
        """
        self.product_id = product_id
        self.level_name = level
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level_number(level))
        self.logger.handlers.clear()  # Remove existing handlers

        # Console handler
        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(TRACE)
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        # File handler
        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"init-database_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(TRACE)  # Logger level decides what reaches the file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def set_level(self, level_name: str):
        """
        Change the log level.

        Raises:
            InvalidLogLevelError: If the name is not a supported level
        """
        self.logger.setLevel(level_number(level_name))
        self.level_name = level_name

    def is_trace(self) -> bool:
        return self.logger.isEnabledFor(TRACE)

    def is_debug(self) -> bool:
        return self.logger.isEnabledFor(logging.DEBUG)

    def trace(self, message: str, **kwargs):
        """Log trace message with optional context."""
        self._log(TRACE, message, kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(FATAL, message, kwargs)

    def log(self, message_number: int, *details, **kwargs):
        """
        Log a numbered message.

        The message number chooses both the level and the template; the
        rendered record is prefixed with its message ID.

        Args:
            message_number: Key into messages.MESSAGES
            *details: Positional values for the template
            **kwargs: Context appended as JSON
        """
        level = level_for_message(message_number)
        if not self.logger.isEnabledFor(level):
            return
        message_id = self.message_id(message_number)
        text = format_message(message_number, *details)
        self._log(level, f"[{message_id}] {text}", kwargs)

    def message_id(self, message_number: int) -> str:
        return f"{MESSAGE_ID_PREFIX}{self.product_id:04d}{message_number:04d}"

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)


# Logger instances by name
_loggers: Dict[str, StructuredLogger] = {}


def get_logger(
    name: str = "initdatabase",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the logger instance for a name.

    Args:
        name: Logger name
        level: Log level used when the logger is first created
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = StructuredLogger(name=name, level=level, **kwargs)
        _loggers[name] = logger
    return logger


def reset_logger():
    """Forget all cached loggers (useful for testing)."""
    _loggers.clear()


_instance_ids = itertools.count(1)


def instance_logger(prefix: str, level: str = "INFO") -> StructuredLogger:
    """
    Uncached logger owned by a single object.

    The name is ``<prefix>.<n>`` with n unique per process, so records still
    propagate to the ``initdatabase`` handlers while the level stays private
    to the owner.
    """
    name = f"{prefix}.{next(_instance_ids)}"
    return StructuredLogger(name=name, level=level, enable_console=False)

"""
Logging system for GitHub Mirror Sync.

Provides structured logging with color console output and optional file rotation.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

import colorlog

CONSOLE_FORMAT = "%(log_color)s[%(asctime)s]%(reset)s %(levelname)-8s %(name)s (%(threadName)s) - %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s (%(threadName)s) - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredLogger:
    """Structured logging system with color output and optional file rotation."""

    def __init__(self, name: str, log_config):
        """Initialize logger.

        Args:
            name: Logger name
            log_config: LogConfig instance with logging configuration
        """
        self.name = name
        self.log_config = log_config
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """Setup logger with handlers.

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(f"ghsync.{self.name}")
        logger.setLevel(self.log_config.level)
        logger.propagate = False

        logger.handlers.clear()
        logger.addHandler(self._create_console_handler())

        if self.log_config.file_path:
            Path(self.log_config.file_path).parent.mkdir(parents=True, exist_ok=True)
            logger.addHandler(self._create_file_handler())

        return logger

    def _create_console_handler(self) -> logging.StreamHandler:
        """Create console handler with color output.

        Returns:
            Configured console handler
        """
        handler = colorlog.StreamHandler()
        handler.setLevel(self.log_config.level)

        formatter = colorlog.ColoredFormatter(
            CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            }
        )
        handler.setFormatter(formatter)
        return handler

    def _create_file_handler(self) -> logging.Handler:
        """Create file handler with rotation.

        Returns:
            Configured file handler
        """
        max_bytes = self.log_config.max_file_size * 1024 * 1024  # MB to bytes

        handler = logging.handlers.RotatingFileHandler(
            self.log_config.file_path,
            maxBytes=max_bytes,
            backupCount=self.log_config.backup_count,
            encoding="utf-8"
        )
        handler.setLevel(self.log_config.level)
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def debug(self, message: str, *args, **kwargs) -> None:
        """Log debug message."""
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        """Log info message."""
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        """Log warning message."""
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, exc_info=False, **kwargs) -> None:
        """Log error message."""
        self.logger.error(message, *args, exc_info=exc_info, **kwargs)

    def exception(self, message: str, *args, **kwargs) -> None:
        """Log exception message."""
        self.logger.exception(message, *args, **kwargs)


class _DefaultLogConfig:
    level = "INFO"
    file_path = None
    max_file_size = 100
    backup_count = 10


_loggers: dict = {}


def get_logger(name: str, log_config=None) -> StructuredLogger:
    """Get or create a logger instance.

    Args:
        name: Logger name
        log_config: Optional LogConfig instance (console at INFO if not provided)

    Returns:
        StructuredLogger instance
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name, log_config or _DefaultLogConfig())
    return _loggers[name]


def create_logger(name: str, log_config) -> StructuredLogger:
    """Create a new logger instance (overwriting if exists).

    Args:
        name: Logger name
        log_config: LogConfig instance

    Returns:
        StructuredLogger instance
    """
    _loggers[name] = StructuredLogger(name, log_config)
    return _loggers[name]

"""Logging configuration for DataBar.

Provides structured logging with file rotation and optional debug output.
All components should use this logging system instead of print().

Usage:
    from config.logging_config import setup_logging, get_logger

    # Initialize at app startup
    setup_logging(data_dir=Path.home() / ".databar")

    # Get logger in any module
    logger = get_logger(__name__)
    logger.info("Refresh pass started")
"""
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from config.constants import STORAGE

ROOT_LOGGER_NAME = "databar"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Module-level logger cache
_loggers: dict = {}
_initialized: bool = False


class DataBarFormatter(logging.Formatter):
    """Console formatter that colours the level name when attached to a TTY."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not (self.use_colors and sys.stderr.isatty()):
            return super().format(record)
        # Colour a copy so file handlers sharing the record stay plain
        coloured = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, '')
        coloured.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(coloured)


def setup_logging(
    data_dir: Optional[Path] = None,
    debug: bool = False,
    console_output: bool = True,
    log_to_file: bool = True
) -> logging.Logger:
    """Initialize the logging system.

    Call once at application startup; calling again replaces the handlers.

    Args:
        data_dir: Directory for log files. Defaults to ~/.databar/
        debug: Enable debug-level logging.
        console_output: Also log to stderr.
        log_to_file: Write logs to a rotating file.

    Returns:
        The root logger for the application.
    """
    global _initialized

    if data_dir is None:
        data_dir = Path.home() / STORAGE.DATA_DIR_NAME

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.propagate = False

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if log_to_file:
        data_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            data_dir / STORAGE.LOG_FILE,
            maxBytes=STORAGE.LOG_MAX_BYTES,
            backupCount=STORAGE.LOG_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
        console_handler.setFormatter(DataBarFormatter(use_colors=True))
        root_logger.addHandler(console_handler)

    root_logger.info(
        f"Logging initialized - level={'DEBUG' if debug else 'INFO'}, "
        f"file={log_to_file}, console={console_output}"
    )

    _initialized = True
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Returns a child of the 'databar' logger named after the last two parts
    of the module path, e.g. "app.scheduler".

    Args:
        name: Usually __name__ of the calling module.
    """
    short_name = '.'.join(name.split('.')[-2:])

    if short_name not in _loggers:
        _loggers[short_name] = logging.getLogger(f'{ROOT_LOGGER_NAME}.{short_name}')

    return _loggers[short_name]


def log_exception(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """Log an exception with traceback and its type name.

    Example:
        >>> try:
        ...     store.set(key, payload)
        ... except StorageError as e:
        ...     log_exception(logger, "Failed to persist properties", e)
    """
    logger.error(
        f"{message}: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra={'exception_type': type(exc).__name__}
    )


class LogContext:
    """Context manager for logging operation duration.

    Example:
        >>> with LogContext(logger, "Refresh pass"):
        ...     run_pass()
        # Logs: "Refresh pass completed in 812ms"
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[datetime] = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.log(self.level, f"{self.operation} starting...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.now() - self.start_time).total_seconds() * 1000

        if exc_type:
            self.logger.error(
                f"{self.operation} failed after {duration:.0f}ms: {exc_val}"
            )
        else:
            self.logger.log(
                self.level,
                f"{self.operation} completed in {duration:.0f}ms"
            )

        return False  # Don't suppress exceptions

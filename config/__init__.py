"""Configuration module for DataBar.

Provides centralized configuration, logging and exceptions.
"""
from config.constants import (
    API,
    COLORS,
    GLYPHS,
    ICONS,
    INTERVALS,
    LIMITS,
    STORAGE,
    UI,
    ApiConfig,
    Colors,
    Icons,
    Intervals,
    Limits,
    StorageConfig,
    UIConfig,
)
from config.exceptions import (
    ConfigurationError,
    DataBarError,
    FetchError,
    HttpStatusError,
    MalformedResponseError,
    PropertyNotFoundError,
    StorageError,
    TokenError,
    TransportError,
)
from config.logging_config import LogContext, get_logger, log_exception, setup_logging

__all__ = [
    # Constants
    "API",
    "COLORS",
    "GLYPHS",
    "ICONS",
    "INTERVALS",
    "LIMITS",
    "STORAGE",
    "UI",
    "ApiConfig",
    "Colors",
    "Icons",
    "Intervals",
    "Limits",
    "StorageConfig",
    "UIConfig",
    # Exceptions
    "DataBarError",
    "ConfigurationError",
    "PropertyNotFoundError",
    "StorageError",
    "TokenError",
    "FetchError",
    "TransportError",
    "HttpStatusError",
    "MalformedResponseError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_exception",
    "LogContext",
]

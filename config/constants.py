"""Centralized constants and configuration for DataBar.

Keeps intervals, limits, storage keys, API endpoints and icon names in one
place so the rest of the codebase never hard-codes them.

Usage:
    from config.constants import INTERVALS, LIMITS, STORAGE

    interval = INTERVALS.DEFAULT_REFRESH_SECONDS
    max_properties = LIMITS.MAX_PROPERTIES
"""
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Intervals:
    """Time intervals for various operations (in seconds)."""
    # Refresh timer
    DEFAULT_REFRESH_SECONDS: int = 30
    REFRESH_OPTIONS_SECONDS: Tuple[int, ...] = (30, 60, 120, 300, 600, 1200, 1800)

    # Connectivity polling
    CONNECTIVITY_POLL_SECONDS: float = 2.0

    # HTTP calls to the Google APIs
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Menu bar title redraw (main thread)
    TITLE_REDRAW_SECONDS: float = 1.0

    # Shutdown
    SHUTDOWN_WAIT_SECONDS: float = 5.0


@dataclass(frozen=True)
class Limits:
    """Collection and field limits."""
    MAX_PROPERTIES: int = 5
    MAX_LABEL_LENGTH: int = 3
    MAX_RESPONSE_BODY_LOGGED: int = 1000


@dataclass(frozen=True)
class StorageConfig:
    """Storage and file-related configuration."""
    # Directory and file names
    DATA_DIR_NAME: str = ".databar"
    PREFERENCES_FILE: str = "preferences.json"
    CREDENTIALS_FILE: str = "credentials.json"
    LOG_FILE: str = "databar.log"
    TELEMETRY_FILE: str = "telemetry.log"

    # Preference keys (match the keys used by earlier app versions)
    PROPERTIES_KEY: str = "configuredProperties"
    LEGACY_PROPERTY_KEY: str = "selectedPropertyId"
    REFRESH_INTERVAL_KEY: str = "intervalSeconds"

    # Log rotation
    LOG_MAX_BYTES: int = 5_000_000  # 5MB
    LOG_BACKUP_COUNT: int = 3

    # Temp directories
    ICON_TEMP_DIR: str = "databar-icons"


@dataclass(frozen=True)
class ApiConfig:
    """Google Analytics endpoints and OAuth settings."""
    ADMIN_BASE_URL: str = "https://analyticsadmin.googleapis.com/v1beta"
    DATA_BASE_URL: str = "https://analyticsdata.googleapis.com/v1beta"
    READONLY_SCOPE: str = "https://www.googleapis.com/auth/analytics.readonly"
    ACTIVE_USERS_METRIC: str = "activeUsers"
    WEB_REALTIME_URL: str = "https://analytics.google.com/analytics/web/#/p{numeric_id}/realtime/overview"
    USER_AGENT: str = "DataBar/2.0"


@dataclass(frozen=True)
class Icons:
    """Symbol names used for properties and the menu bar title.

    Names follow the SF Symbols catalogue so stored values stay compatible
    with earlier app versions; GLYPHS maps them to text for the rumps title.
    """
    DEFAULT: str = "chart.bar.fill"
    ERROR: str = "exclamationmark.circle"
    NEEDS_CONFIGURATION: str = "gearshape"
    SIGNED_OUT: str = "person.crop.circle.badge.questionmark"

    # Keyword rules for the default icon, first match wins
    KEYWORD_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
        (("mobile", "app", "ios", "android"), "iphone"),
        (("web", "site", "www"), "globe"),
        (("shop", "store", "commerce"), "cart.fill"),
        (("blog", "content"), "doc.text.fill"),
    )

    # Icons offered in the edit menu
    CURATED: Tuple[str, ...] = (
        "chart.bar.fill",
        "chart.line.uptrend.xyaxis",
        "globe",
        "iphone",
        "cart.fill",
        "doc.text.fill",
        "person.2.fill",
        "star.fill",
        "bolt.fill",
        "house.fill",
    )


@dataclass(frozen=True)
class Colors:
    """RGBA colours (0-255) for the PIL-rendered status icon."""
    GREEN_RGBA: Tuple[int, int, int, int] = (52, 199, 89, 255)    # macOS green
    YELLOW_RGBA: Tuple[int, int, int, int] = (255, 204, 0, 255)   # macOS yellow
    RED_RGBA: Tuple[int, int, int, int] = (255, 59, 48, 255)      # macOS red
    GRAY_RGBA: Tuple[int, int, int, int] = (142, 142, 147, 255)   # macOS gray


@dataclass(frozen=True)
class UIConfig:
    """UI-related configuration."""
    STATUS_ICON_SIZE: int = 18
    USERS_SUFFIX: str = " users"
    SEPARATOR: str = " | "
    LOADING_TEXT: str = "…"
    ERROR_TEXT: str = "Err"
    NEEDS_CONFIGURATION_TEXT: str = "Configure"
    SIGNED_OUT_TEXT: str = "Sign In"


# Text glyphs standing in for symbol names in the plain-text menu bar title
GLYPHS: Dict[str, str] = {
    "chart.bar.fill": "📊",
    "chart.line.uptrend.xyaxis": "📈",
    "globe": "🌐",
    "iphone": "📱",
    "cart.fill": "🛒",
    "doc.text.fill": "📄",
    "person.2.fill": "👥",
    "star.fill": "⭐",
    "bolt.fill": "⚡",
    "house.fill": "🏠",
    "exclamationmark.circle": "⚠️",
    "gearshape": "⚙️",
    "person.crop.circle.badge.questionmark": "👤",
}


# Global instances - import these
INTERVALS = Intervals()
LIMITS = Limits()
STORAGE = StorageConfig()
API = ApiConfig()
ICONS = Icons()
COLORS = Colors()
UI = UIConfig()

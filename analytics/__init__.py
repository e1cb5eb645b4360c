"""Google Analytics collaborators and the property data model."""

from .auth import GoogleTokenProvider, TokenProvider
from .client import AnalyticsClient, parse_active_users
from .connectivity import ConnectivityMonitor, has_usable_interface
from .models import (
    AddRejection,
    AddResult,
    ConfiguredProperty,
    PropertyState,
    RemoteAccount,
    RemoteProperty,
    default_icon_for,
    normalize_label,
    numeric_property_id,
)
from .telemetry import TelemetryLogger

__all__ = [
    "AddRejection",
    "AddResult",
    "AnalyticsClient",
    "ConfiguredProperty",
    "ConnectivityMonitor",
    "GoogleTokenProvider",
    "PropertyState",
    "RemoteAccount",
    "RemoteProperty",
    "TelemetryLogger",
    "TokenProvider",
    "default_icon_for",
    "has_usable_interface",
    "normalize_label",
    "numeric_property_id",
    "parse_active_users",
]

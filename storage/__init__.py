"""Data persistence components."""

from .kv_store import JsonKeyValueStore
from .property_store import PropertyStore
from .settings import SettingsManager, interval_label

__all__ = [
    "JsonKeyValueStore",
    "PropertyStore",
    "SettingsManager",
    "interval_label",
]

"""Dependency injection container for DataBar.

Every collaborator of the refresh core is constructed here and passed in
explicitly, so tests can swap any of them for a fake.

Usage:
    from app.dependencies import create_dependencies

    deps = create_dependencies()
    controller = AppController(deps)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import STORAGE, get_logger

logger = get_logger(__name__)


@dataclass
class AppDependencies:
    """Container for all application dependencies."""

    # Storage
    kv_store: "JsonKeyValueStore"
    property_store: "PropertyStore"
    settings: "SettingsManager"

    # Google Analytics collaborators
    token_provider: "TokenProvider"
    analytics_client: "AnalyticsClient"
    connectivity_monitor: "ConnectivityMonitor"
    telemetry: "TelemetryLogger"

    event_bus: Optional["EventBus"] = None

    def __post_init__(self):
        logger.debug("AppDependencies container created")


def create_dependencies(
    data_dir: Optional[Path] = None, event_bus: Optional["EventBus"] = None
) -> AppDependencies:
    """Create all application dependencies.

    Args:
        data_dir: Override the default ~/.databar data directory.
        event_bus: Provide an existing event bus, or an async one is created.

    Returns:
        AppDependencies container with all components.
    """
    # Import here to avoid circular imports
    from analytics.auth import GoogleTokenProvider
    from analytics.client import AnalyticsClient
    from analytics.connectivity import ConnectivityMonitor
    from analytics.telemetry import TelemetryLogger
    from app.events import EventBus
    from storage.kv_store import JsonKeyValueStore
    from storage.property_store import PropertyStore
    from storage.settings import SettingsManager

    logger.info("Creating application dependencies...")

    if data_dir is None:
        data_dir = Path.home() / STORAGE.DATA_DIR_NAME

    # Storage first, the property store migrates legacy data on construction
    kv_store = JsonKeyValueStore(data_dir=data_dir)
    property_store = PropertyStore(kv_store)
    settings = SettingsManager(kv_store)

    deps = AppDependencies(
        kv_store=kv_store,
        property_store=property_store,
        settings=settings,
        token_provider=GoogleTokenProvider(data_dir / STORAGE.CREDENTIALS_FILE),
        analytics_client=AnalyticsClient(),
        connectivity_monitor=ConnectivityMonitor(),
        telemetry=TelemetryLogger(data_dir=data_dir),
        event_bus=event_bus or EventBus(async_mode=True),
    )

    logger.info("All dependencies created successfully")
    return deps

"""Pytest configuration and shared fixtures.

This module provides:
- Common test fixtures for data directories and sample properties
- Mock collaborators for the refresh core
- Pytest markers for test categorization (unit, integration, slow)
"""
import json
import tempfile
from pathlib import Path
from typing import Any, Generator
from unittest.mock import MagicMock

import pytest

from analytics.models import ConfiguredProperty
from config import STORAGE
from tests.mocks import (
    MockAnalyticsClient,
    MockConnectivityMonitor,
    MockKeyValueStore,
    MockTelemetry,
    MockTokenProvider,
)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: mark test as a unit test (fast, isolated)")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "macos_only: mark test as requiring macOS")


# =============================================================================
# Directory and Path Fixtures
# =============================================================================


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_preferences_path(temp_data_dir: Path) -> Path:
    """Path of the preferences document inside the temp data dir."""
    return temp_data_dir / STORAGE.PREFERENCES_FILE


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_property_records() -> list[dict[str, Any]]:
    """Stored collection as the app writes it under configuredProperties."""
    return [
        {
            "id": "AAAA-0001",
            "propertyId": "properties/1001",
            "propertyName": "Marketing Site",
            "accountDisplayName": "Acme",
            "displayIcon": "globe",
            "displayLabel": "WEB",
            "customDisplayName": None,
            "order": 0,
        },
        {
            "id": "AAAA-0002",
            "propertyId": "properties/1002",
            "propertyName": "Shop",
            "accountDisplayName": "Acme",
            "displayIcon": "cart.fill",
            "displayLabel": None,
            "customDisplayName": "Store",
            "order": 1,
        },
    ]


@pytest.fixture
def populated_kv_store(sample_property_records) -> MockKeyValueStore:
    """Key-value store already holding two configured properties."""
    payload = json.dumps(sample_property_records).encode("utf-8")
    return MockKeyValueStore({STORAGE.PROPERTIES_KEY: payload})


@pytest.fixture
def three_properties() -> list[ConfiguredProperty]:
    """Properties A, B, C in display order."""
    return [
        ConfiguredProperty(property_id="properties/1", property_name="A", order=0, id="ID-A"),
        ConfiguredProperty(property_id="properties/2", property_name="B", order=1, id="ID-B"),
        ConfiguredProperty(property_id="properties/3", property_name="C", order=2, id="ID-C"),
    ]


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def kv_store() -> MockKeyValueStore:
    return MockKeyValueStore()


@pytest.fixture
def token_provider() -> MockTokenProvider:
    return MockTokenProvider()


@pytest.fixture
def analytics_client() -> MockAnalyticsClient:
    return MockAnalyticsClient({"properties/1": 12, "properties/2": 1500, "properties/3": 7})


@pytest.fixture
def telemetry() -> MockTelemetry:
    return MockTelemetry()


@pytest.fixture
def connectivity_monitor() -> MockConnectivityMonitor:
    return MockConnectivityMonitor()


@pytest.fixture
def mock_event_bus() -> MagicMock:
    """Create a mock event bus for testing event-driven components."""
    mock_bus = MagicMock()
    mock_bus.publish = MagicMock()
    mock_bus.subscribe = MagicMock()
    mock_bus.unsubscribe = MagicMock()
    return mock_bus

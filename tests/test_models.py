"""Tests for the property data model."""
from datetime import datetime

import pytest

from analytics.models import (
    ConfiguredProperty,
    PropertyState,
    RemoteAccount,
    RemoteProperty,
    default_icon_for,
    normalize_label,
    numeric_property_id,
)
from config import ICONS


class TestHelpers:
    """Tests for the module-level helpers."""

    def test_icon_match_is_case_insensitive(self):
        assert default_icon_for("ANDROID build") == "iphone"
        assert default_icon_for("") == ICONS.DEFAULT
        assert default_icon_for(None) == ICONS.DEFAULT

    @pytest.mark.parametrize("raw,expected", [
        ("web", "WEB"),
        ("android", "AND"),
        ("  x ", "X"),
        ("", None),
        (None, None),
    ])
    def test_normalize_label(self, raw, expected):
        assert normalize_label(raw) == expected

    def test_numeric_property_id(self):
        assert numeric_property_id("properties/314") == "314"
        assert numeric_property_id("314") == "314"


class TestConfiguredProperty:
    """Tests for ConfiguredProperty."""

    def test_generated_ids_are_unique(self):
        a = ConfiguredProperty(property_id="properties/1", property_name="A")
        b = ConfiguredProperty(property_id="properties/1", property_name="A")
        assert a.id != b.id
        assert a.id == a.id.upper()

    def test_effective_name(self):
        prop = ConfiguredProperty(property_id="properties/314", property_name="Site")
        assert prop.effective_display_name == "Site"
        prop.custom_display_name = "Main"
        assert prop.effective_display_name == "Main"

    def test_dict_round_trip_uses_stored_keys(self):
        prop = ConfiguredProperty(
            property_id="properties/1", property_name="Site", account_display_name="Acme",
            display_icon="globe", display_label="WEB", order=2, id="FIXED-ID",
        )
        data = prop.to_dict()

        assert data["propertyId"] == "properties/1"
        assert data["displayIcon"] == "globe"
        assert ConfiguredProperty.from_dict(data) == prop

    def test_from_dict_defaults(self):
        prop = ConfiguredProperty.from_dict({"propertyId": "properties/9"})
        assert prop.display_icon == ICONS.DEFAULT
        assert prop.order == 0
        assert prop.id

    def test_copy_is_independent(self):
        prop = ConfiguredProperty(property_id="properties/1", property_name="Site")
        clone = prop.copy()
        clone.display_label = "X"
        assert prop.display_label is None
        assert clone.id == prop.id


class TestPropertyState:
    """Tests for PropertyState transitions."""

    def test_initial(self):
        state = PropertyState.initial()
        assert state.is_loading and not state.has_error
        assert state.value is None and state.last_updated is None

    def test_succeeded_then_loading(self):
        at = datetime(2026, 1, 1, 8, 0)
        state = PropertyState.succeeded(77, at).loading()
        assert state == PropertyState(value="77", is_loading=True, has_error=False, last_updated=at)

    def test_failed(self):
        assert PropertyState.failed() == PropertyState(
            value=None, is_loading=False, has_error=True, last_updated=None
        )


class TestRemoteProperty:
    """Tests for Admin API records."""

    def test_from_dict_with_account(self):
        account = RemoteAccount.from_dict({"name": "accounts/5", "displayName": "Acme"})
        prop = RemoteProperty.from_dict({"name": "properties/8", "displayName": "Shop"}, account)

        assert prop.account == "accounts/5"
        assert prop.account_display_name == "Acme"
        assert not prop.is_deleted

    def test_to_configured(self):
        prop = RemoteProperty(name="properties/8", display_name="Online Store", account_display_name="Acme")
        configured = prop.to_configured()

        assert configured.property_id == "properties/8"
        assert configured.property_name == "Online Store"
        assert configured.display_icon == "cart.fill"

"""Tests for menu bar title derivation."""
from datetime import datetime

import pytest

from analytics.models import ConfiguredProperty, PropertyState
from app.display import (
    TitleSegment,
    build_title,
    format_count,
    menu_status_line,
    status_color,
    value_text,
)
from config import GLYPHS, ICONS, UI


def _prop(number, icon="globe", label=None, order=0):
    return ConfiguredProperty(
        property_id=f"properties/{number}",
        property_name=f"Site {number}",
        display_icon=icon,
        display_label=label,
        order=order,
        id=f"ID-{number}",
    )


def _done(count):
    return PropertyState.succeeded(count, datetime(2026, 3, 1, 9, 5, 7))


class TestFormatCount:
    """Tests for format_count()."""

    @pytest.mark.parametrize("value,expected", [
        ("1500", "1.5k"),
        ("42", "42"),
        ("12345", "12.3k"),
        ("999", "999"),
        ("1000", "1.0k"),
        ("0", "0"),
    ])
    def test_formats(self, value, expected):
        """Counts above 999 get a k suffix."""
        assert format_count(value) == expected

    def test_non_numeric_passthrough(self):
        """Unparseable values are shown as-is."""
        assert format_count("n/a") == "n/a"


class TestValueText:
    """Tests for value_text()."""

    def test_error(self):
        assert value_text(PropertyState.failed()) == "Err"

    def test_initial_loading(self):
        assert value_text(PropertyState.initial()) == "…"

    def test_loading_with_value(self):
        """Reloading keeps showing the last count."""
        assert value_text(_done(2500).loading()) == "2.5k"

    def test_value(self):
        assert value_text(_done(42)) == "42"


class TestBuildTitle:
    """Tests for build_title()."""

    def test_no_properties(self):
        """An empty collection asks for configuration."""
        model = build_title([], {})
        assert model.segments == [TitleSegment(icon=ICONS.NEEDS_CONFIGURATION, text=UI.NEEDS_CONFIGURATION_TEXT)]
        assert model.text == f"{GLYPHS[ICONS.NEEDS_CONFIGURATION]} Configure"

    def test_signed_out(self):
        """Signed out shows the sign-in prompt regardless of properties."""
        model = build_title([_prop(1)], {"ID-1": _done(5)}, signed_in=False)
        assert model.segments[0].text == UI.SIGNED_OUT_TEXT
        assert model.segments[0].icon == ICONS.SIGNED_OUT

    def test_single_property_has_suffix(self):
        """One property reads "<icon> 42 users"."""
        model = build_title([_prop(1)], {"ID-1": _done(42)})
        assert model.text == f"{GLYPHS['globe']} 42{UI.USERS_SUFFIX}"

    def test_multiple_properties_joined_in_order(self):
        """Several properties are joined by the separator, sorted by order."""
        props = [_prop(2, icon="cart.fill", order=1), _prop(1, label="WEB", order=0)]
        states = {"ID-1": _done(1500), "ID-2": PropertyState.failed()}

        model = build_title(props, states)

        first, second = model.segments
        assert first.label == "WEB" and first.text == "1.5k"
        assert second.icon == ICONS.ERROR and second.text == "Err"
        assert model.suffix == ""
        assert UI.SEPARATOR in model.text
        assert model.has_error

    def test_missing_state_shows_loading(self):
        """Properties without a state yet render as loading."""
        model = build_title([_prop(1)], {})
        assert model.segments[0].text == "…"


class TestMenuAndColor:
    """Tests for menu_status_line() and status_color()."""

    def test_menu_line_with_time(self):
        line = menu_status_line(_prop(1), _done(42))
        assert line == "Site 1: 42 (updated 09:05:07)"

    def test_menu_line_error_has_no_time(self):
        assert menu_status_line(_prop(1), PropertyState.failed()) == "Site 1: Err"

    def test_colors(self):
        props = [_prop(1)]
        ok = {"ID-1": _done(1)}
        loading = {"ID-1": PropertyState.initial()}
        failed = {"ID-1": PropertyState.failed()}

        assert status_color(build_title(props, ok), ok) == "green"
        assert status_color(build_title(props, loading), loading) == "yellow"
        assert status_color(build_title(props, failed), failed) == "red"
        assert status_color(build_title([], {}), {}) == "gray"

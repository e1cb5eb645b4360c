"""Menu bar title derivation.

Pure functions from (properties, states) to what the status item shows.
No rumps import here so the rules can be tested anywhere.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from analytics.models import ConfiguredProperty, PropertyState
from config import GLYPHS, ICONS, UI


@dataclass(frozen=True)
class TitleSegment:
    """One property's part of the title: icon, optional label, value text."""
    icon: str
    text: str
    label: Optional[str] = None
    property_id: Optional[str] = None

    def render(self) -> str:
        parts = [GLYPHS.get(self.icon, "•")]
        if self.label:
            parts.append(self.label)
        parts.append(self.text)
        return " ".join(parts)


@dataclass(frozen=True)
class TitleModel:
    """The whole status item title."""
    segments: List[TitleSegment] = field(default_factory=list)
    suffix: str = ""

    @property
    def text(self) -> str:
        return UI.SEPARATOR.join(s.render() for s in self.segments) + self.suffix

    @property
    def has_error(self) -> bool:
        return any(s.icon == ICONS.ERROR for s in self.segments)


def format_count(value: str) -> str:
    """Format an active-user count for the title.

    Counts above 999 get one decimal and a "k" ("12345" -> "12.3k");
    smaller ones are grouped ("42" -> "42"). Non-numeric strings are
    returned unchanged.
    """
    try:
        count = int(value)
    except (TypeError, ValueError):
        return value
    if count > 999:
        return f"{count / 1000:.1f}k"
    return f"{count:,}"


def value_text(state: PropertyState) -> str:
    if state.has_error:
        return UI.ERROR_TEXT
    if state.is_loading and state.value is None:
        return UI.LOADING_TEXT
    if state.value is not None:
        return format_count(state.value)
    return UI.LOADING_TEXT


def build_segment(prop: ConfiguredProperty, state: PropertyState) -> TitleSegment:
    icon = ICONS.ERROR if state.has_error else prop.display_icon
    return TitleSegment(
        icon=icon,
        text=value_text(state),
        label=prop.display_label or None,
        property_id=prop.property_id,
    )


def build_title(properties: Sequence[ConfiguredProperty],
                states: Mapping[str, PropertyState],
                signed_in: bool = True) -> TitleModel:
    """Derive the status item title.

    Args:
        properties: Configured properties, in any order.
        states: PropertyState keyed by local property id.
        signed_in: False shows the sign-in prompt instead of values.
    """
    if not signed_in:
        return TitleModel([TitleSegment(icon=ICONS.SIGNED_OUT, text=UI.SIGNED_OUT_TEXT)])

    ordered = sorted(properties, key=lambda p: p.order)
    if not ordered:
        return TitleModel([TitleSegment(icon=ICONS.NEEDS_CONFIGURATION, text=UI.NEEDS_CONFIGURATION_TEXT)])

    segments = [
        build_segment(prop, states.get(prop.id, PropertyState.initial()))
        for prop in ordered
    ]
    suffix = UI.USERS_SUFFIX if len(ordered) == 1 else ""
    return TitleModel(segments, suffix)


def menu_status_line(prop: ConfiguredProperty, state: PropertyState) -> str:
    """Menu item text for one property, e.g. "Shop: 1.2k (updated 14:02:11)"."""
    line = f"{prop.effective_display_name}: {value_text(state)}"
    if state.last_updated is not None and not state.has_error:
        line += f" (updated {state.last_updated.strftime('%H:%M:%S')})"
    return line


def status_color(model: TitleModel, states: Dict[str, PropertyState]) -> str:
    """Colour of the status dot: red on any error, yellow while loading, green otherwise."""
    if model.has_error:
        return "red"
    if not states:
        return "gray"
    if any(s.is_loading and s.value is None for s in states.values()):
        return "yellow"
    return "green"

"""Menu building utilities for DataBar.

Builds the rumps menu from a ControllerView snapshot. Dynamic parts (the
property status lines and the Manage Properties submenu) are rebuilt when
the property list changes; the status lines are retitled on every redraw.

Usage:
    from app.views.menu_builder import MenuBuilder, MenuCallbacks

    builder = MenuBuilder()
    menu = builder.build_main_menu(controller.view(), callbacks, interval=30,
                                   interval_options=settings.get_refresh_interval_options())
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import rumps

from analytics.models import PropertyState
from app.display import menu_status_line
from config import GLYPHS, ICONS, LIMITS, get_logger

logger = get_logger(__name__)


@dataclass
class MenuCallbacks:
    """Container for menu item callbacks.

    Property callbacks receive the ConfiguredProperty they act on.
    """
    open_property: Optional[Callable] = None
    refresh_now: Optional[Callable] = None
    set_interval: Optional[Callable] = None
    add_property: Optional[Callable] = None
    remove_property: Optional[Callable] = None
    move_property_up: Optional[Callable] = None
    edit_label: Optional[Callable] = None
    rename_property: Optional[Callable] = None
    set_icon: Optional[Callable] = None
    sign_out: Optional[Callable] = None
    quit_app: Optional[Callable] = None


def _checked(title: str, selected: bool) -> str:
    return f"{'✓ ' if selected else '   '}{title}"


class MenuBuilder:
    """Builds and updates the application menu structure."""

    def __init__(self):
        self._menu_items: Dict[str, rumps.MenuItem] = {}
        self._status_items: Dict[str, rumps.MenuItem] = {}
        logger.debug("MenuBuilder initialized")

    def build_main_menu(self, view, callbacks: MenuCallbacks, interval: int,
                        interval_options: Sequence[Tuple[int, str]],
                        signed_in: bool = True) -> List:
        """Build the complete main menu.

        Args:
            view: ControllerView with the current properties and states.
            callbacks: Container with callback functions for menu items.
            interval: Currently selected refresh interval in seconds.
            interval_options: (seconds, label) pairs for the interval submenu.
            signed_in: Whether stored credentials are available.

        Returns:
            List of menu items for rumps.App.menu
        """
        self._menu_items.clear()
        self._status_items.clear()

        menu: List = []
        if not signed_in:
            menu.append(rumps.MenuItem("Not signed in to Google Analytics"))
        elif not view.properties:
            menu.append(rumps.MenuItem("No properties configured"))
        for prop in view.properties:
            state = view.property_states.get(prop.id, PropertyState.initial())
            item = rumps.MenuItem(
                menu_status_line(prop, state),
                callback=lambda _, p=prop: callbacks.open_property(p),
            )
            self._status_items[prop.id] = item
            menu.append(item)

        self._menu_items['refresh'] = rumps.MenuItem("Refresh Now", callback=callbacks.refresh_now)
        self._menu_items['interval'] = self._build_interval_menu(callbacks, interval, interval_options)
        self._menu_items['manage'] = self._build_manage_menu(view, callbacks)

        menu.extend([
            rumps.separator,
            self._menu_items['refresh'],
            self._menu_items['interval'],
            self._menu_items['manage'],
            rumps.separator,
        ])
        if signed_in:
            menu.append(rumps.MenuItem("Sign Out", callback=callbacks.sign_out))
        menu.append(rumps.MenuItem("Quit DataBar", callback=callbacks.quit_app))
        return menu

    def _build_interval_menu(self, callbacks: MenuCallbacks, interval: int,
                             interval_options: Sequence[Tuple[int, str]]) -> rumps.MenuItem:
        submenu = rumps.MenuItem("Refresh Interval")
        for seconds, label in interval_options:
            submenu.add(rumps.MenuItem(
                _checked(label, seconds == interval),
                callback=lambda _, s=seconds: callbacks.set_interval(s),
            ))
        return submenu

    def _build_manage_menu(self, view, callbacks: MenuCallbacks) -> rumps.MenuItem:
        manage = rumps.MenuItem("Manage Properties")

        full = len(view.properties) >= LIMITS.MAX_PROPERTIES
        add_title = f"Add Property… ({len(view.properties)}/{LIMITS.MAX_PROPERTIES})"
        manage.add(rumps.MenuItem(add_title, callback=None if full else callbacks.add_property))
        if view.properties:
            manage.add(rumps.separator)

        for index, prop in enumerate(view.properties):
            entry = rumps.MenuItem(f"{GLYPHS.get(prop.display_icon, '•')} {prop.effective_display_name}")
            entry.add(rumps.MenuItem(prop.property_id))
            entry.add(rumps.separator)
            entry.add(rumps.MenuItem("Rename…", callback=lambda _, p=prop: callbacks.rename_property(p)))
            entry.add(rumps.MenuItem("Edit Label…", callback=lambda _, p=prop: callbacks.edit_label(p)))
            entry.add(self._build_icon_menu(prop, callbacks))
            if index > 0:
                entry.add(rumps.MenuItem("Move Up", callback=lambda _, p=prop: callbacks.move_property_up(p)))
            entry.add(rumps.separator)
            entry.add(rumps.MenuItem("Remove", callback=lambda _, p=prop: callbacks.remove_property(p)))
            manage.add(entry)

        return manage

    @staticmethod
    def _build_icon_menu(prop, callbacks: MenuCallbacks) -> rumps.MenuItem:
        icons = rumps.MenuItem("Icon")
        for name in ICONS.CURATED:
            icons.add(rumps.MenuItem(
                _checked(f"{GLYPHS.get(name, '•')} {name}", name == prop.display_icon),
                callback=lambda _, p=prop, n=name: callbacks.set_icon(p, n),
            ))
        return icons

    def get_item(self, key: str) -> Optional[rumps.MenuItem]:
        return self._menu_items.get(key)

    def update_status_lines(self, view) -> None:
        """Retitle the per-property lines without rebuilding the menu."""
        for prop in view.properties:
            item = self._status_items.get(prop.id)
            if item is None:
                continue
            state = view.property_states.get(prop.id, PropertyState.initial())
            title = menu_status_line(prop, state)
            if item.title != title:
                item.title = title

    @staticmethod
    def safe_menu_clear(menu) -> None:
        """Clear a menu, tolerating one whose NSMenu isn't built yet."""
        try:
            menu.clear()
        except (AttributeError, TypeError) as e:
            logger.debug(f"Menu clear skipped: {e}")

#!/usr/bin/env python3
"""DataBar - Google Analytics real-time users in the macOS menu bar.

Shows the active-user count of up to five GA4 properties in the status
item and refreshes them periodically and when the network comes back.
"""
import atexit
import os
import signal
import subprocess
import threading
from pathlib import Path

import rumps

from app.controller import AppController
from app.dependencies import create_dependencies
from app.display import status_color
from app.events import EventBus, EventType
from app.timer import MenuAwareTimer
from app.views.icons import IconGenerator
from app.views.menu_builder import MenuBuilder, MenuCallbacks
from config import INTERVALS, LIMITS, STORAGE, get_logger, setup_logging
from config.exceptions import ConfigurationError, DataBarError, FetchError, TokenError

logger = get_logger(__name__)

APP_NAME = "DataBar"


class DataBarApp(rumps.App):
    """Main menu bar application."""

    def __init__(self, data_dir: Path):
        super().__init__(name=APP_NAME, title="…", quit_button=None)

        # Handlers only raise flags; all drawing happens on the main thread
        self._event_bus = EventBus(async_mode=False)
        self._deps = create_dependencies(data_dir=data_dir, event_bus=self._event_bus)
        self._controller = AppController(self._deps, self._event_bus)

        self._icons = IconGenerator()
        self._menu_builder = MenuBuilder()
        self._callbacks = MenuCallbacks(
            open_property=self._open_property,
            refresh_now=self._refresh_now,
            set_interval=self._set_interval,
            add_property=self._add_property,
            remove_property=self._remove_property,
            move_property_up=self._move_property_up,
            edit_label=self._edit_label,
            rename_property=self._rename_property,
            set_icon=self._set_icon,
            sign_out=self._sign_out,
            quit_app=self._quit,
        )

        self._dirty_lock = threading.Lock()
        self._title_dirty = True
        self._menu_dirty = True
        self._redraw_timer = None
        self._running = True

        atexit.register(self._icons.cleanup)

        self._subscribe_to_events()
        self._rebuild_menu()

        self._controller.start()

        # MenuAwareTimer needs the run loop, which only exists after run()
        self._startup_timer = rumps.Timer(self._delayed_timer_start, 0.5)
        self._startup_timer.start()

        logger.info("DataBarApp initialized")

    # === Event wiring ===

    def _subscribe_to_events(self):
        for event_type in (EventType.PROPERTY_STATE_CHANGED, EventType.REFRESH_STARTED,
                           EventType.REFRESH_FINISHED, EventType.CONNECTIVITY_CHANGED):
            self._event_bus.subscribe(event_type, self._mark_title_dirty)
        for event_type in (EventType.PROPERTIES_CHANGED, EventType.SETTINGS_CHANGED,
                           EventType.AUTH_STATE_CHANGED):
            self._event_bus.subscribe(event_type, self._mark_menu_dirty)

    def _mark_title_dirty(self, event):
        with self._dirty_lock:
            self._title_dirty = True

    def _mark_menu_dirty(self, event):
        with self._dirty_lock:
            self._title_dirty = True
            self._menu_dirty = True

    def _delayed_timer_start(self, _):
        if self._redraw_timer is not None:
            return
        self._startup_timer.stop()
        self._redraw_timer = MenuAwareTimer(self._redraw_callback, INTERVALS.TITLE_REDRAW_SECONDS)
        self._redraw_timer.start()
        self._redraw()
        logger.info("Started menu-aware redraw timer")

    def _redraw_callback(self, timer):
        """Timer callback (runs on main thread)."""
        if not self._running:
            return
        try:
            self._redraw()
        except Exception as e:
            logger.error(f"Redraw failed: {e}", exc_info=True)

    # === Drawing ===

    def _redraw(self):
        with self._dirty_lock:
            title_dirty, menu_dirty = self._title_dirty, self._menu_dirty
            self._title_dirty = self._menu_dirty = False

        if menu_dirty:
            self._rebuild_menu()
        if title_dirty or menu_dirty:
            self._update_title()

    def _update_title(self):
        view = self._controller.view()
        model = self._controller.title()
        self.title = model.text
        try:
            self.icon = self._icons.create_status_icon(status_color(model, view.property_states))
        except OSError as e:
            logger.debug(f"Status icon unavailable: {e}")
        self._menu_builder.update_status_lines(view)

    def _rebuild_menu(self):
        items = self._menu_builder.build_main_menu(
            self._controller.view(),
            self._callbacks,
            interval=self._controller.refresh_interval,
            interval_options=self._deps.settings.get_refresh_interval_options(),
            signed_in=self._controller.is_signed_in,
        )
        self._menu_builder.safe_menu_clear(self.menu)
        self.menu = items

    # === Menu actions ===

    def _open_property(self, prop):
        url = AppController.google_analytics_url(prop.property_id)
        subprocess.run(['open', url], check=False)

    def _refresh_now(self, _):
        if not self._controller.request_refresh("manual"):
            logger.debug("Manual refresh folded into the running pass")

    def _set_interval(self, seconds):
        try:
            self._controller.set_refresh_interval(seconds)
        except ConfigurationError as e:
            rumps.alert("Refresh Interval", e.message)

    def _add_property(self, _):
        if self._deps.property_store.is_full:
            rumps.alert("Add Property", f"You can show at most {LIMITS.MAX_PROPERTIES} properties.")
            return
        try:
            available = self._controller.available_properties()
        except TokenError:
            rumps.alert("Add Property", "Your Google sign-in has expired. Sign in again and retry.")
            return
        except FetchError as e:
            rumps.alert("Add Property", f"Could not load your properties: {e.message}")
            return

        if not available:
            rumps.alert("Add Property", "No more properties are available on this account.")
            return

        lines = [
            f"{n}. {p.display_name} ({p.account_display_name or p.account})"
            for n, p in enumerate(available, start=1)
        ]
        response = rumps.Window(
            title="Add Property",
            message="\n".join(lines) + "\n\nEnter the number of the property to add:",
            default_text="1",
            ok="Add",
            cancel="Cancel",
        ).run()
        if not response.clicked:
            return

        try:
            choice = available[int(response.text.strip()) - 1]
        except (ValueError, IndexError):
            rumps.alert("Invalid", "Please enter one of the listed numbers")
            return

        result = self._controller.add_property(choice)
        if not result.ok:
            rumps.alert("Add Property", f"{choice.display_name} could not be added ({result.rejection.value}).")

    def _remove_property(self, prop):
        response = rumps.alert(
            title="Remove Property",
            message=f"Stop showing {prop.effective_display_name}?",
            ok="Remove",
            cancel="Cancel",
        )
        if response == 1:
            self._controller.remove_properties([prop.id])

    def _move_property_up(self, prop):
        self._controller.move_property_up(prop.id)

    def _edit_label(self, prop):
        response = rumps.Window(
            title="Edit Label",
            message=f"Short label shown before {prop.effective_display_name}'s count "
                    f"(up to {LIMITS.MAX_LABEL_LENGTH} characters, empty for none):",
            default_text=prop.display_label or "",
            ok="Save",
            cancel="Cancel",
        ).run()
        if response.clicked:
            self._update(prop, display_label=response.text)

    def _rename_property(self, prop):
        response = rumps.Window(
            title="Rename Property",
            message=f"{prop.property_name}\n{prop.property_id}\n\nDisplay name (empty to use the GA name):",
            default_text=prop.custom_display_name or "",
            ok="Save",
            cancel="Cancel",
        ).run()
        if response.clicked:
            self._update(prop, custom_display_name=response.text)

    def _set_icon(self, prop, icon):
        self._update(prop, display_icon=icon)

    def _update(self, prop, **changes):
        def apply(draft):
            for name, value in changes.items():
                setattr(draft, name, value)

        try:
            self._controller.update_property(prop.id, apply)
        except DataBarError as e:
            logger.warning(f"Could not update {prop.property_id}: {e}")
            rumps.alert("Update Failed", e.message)

    def _sign_out(self, _):
        response = rumps.alert(
            title="Sign Out",
            message="Remove the stored Google credentials from this Mac?",
            ok="Sign Out",
            cancel="Cancel",
        )
        if response == 1:
            self._controller.sign_out()

    def _quit(self, _):
        """Quit the application."""
        logger.info("Application shutting down...")
        self._running = False
        if self._redraw_timer is not None:
            self._redraw_timer.stop()
        self._controller.stop()
        self._icons.cleanup()
        logger.info("Shutdown complete")
        rumps.quit_application()


def main():
    """Entry point for the application."""
    data_dir = Path.home() / STORAGE.DATA_DIR_NAME
    debug = os.environ.get("DATABAR_DEBUG", "").lower() in ("1", "true", "yes")
    setup_logging(data_dir=data_dir, debug=debug, console_output=True)
    logger.info("DataBar starting...")

    app = None

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, quitting...")
        if app:
            app._quit(None)
        else:
            rumps.quit_application()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    try:
        app = DataBarApp(data_dir)
        app.run()
    except Exception as e:
        logger.critical(f"Application crashed: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()

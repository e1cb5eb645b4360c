"""Application controller for DataBar.

Wires the property store, the refresh scheduler, the refresh timer and the
connectivity monitor together, and is the only object the menu bar UI
talks to.

Usage:
    from app.controller import AppController
    from app.dependencies import create_dependencies

    deps = create_dependencies()
    controller = AppController(deps)
    controller.start()
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Union

from analytics import telemetry as events
from analytics.models import (
    AddResult,
    ConfiguredProperty,
    PropertyState,
    RemoteProperty,
    numeric_property_id,
)
from app.dependencies import AppDependencies
from app.display import TitleModel, build_title
from app.events import EventBus, EventType
from app.scheduler import RefreshScheduler
from app.timer import RefreshTimer
from config import API, INTERVALS, get_logger
from config.exceptions import FetchError, TokenError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ControllerView:
    """Read-only snapshot handed to the presentation layer."""
    properties: List[ConfiguredProperty]
    property_states: Dict[str, PropertyState]

    @property
    def has_multiple_properties(self) -> bool:
        return len(self.properties) > 1


class AppController:
    """Central controller that orchestrates application logic.

    The controller:
    - Forwards property edits to the PropertyStore
    - Re-derives the state set and refreshes when properties change
    - Drives periodic refreshes with a RefreshTimer
    - Refreshes when the network comes back

    Attributes:
        deps: The dependency container with all components.
        event_bus: Event bus for publishing state changes.
        scheduler: The RefreshScheduler owning per-property state.
    """

    def __init__(self, deps: AppDependencies, event_bus: Optional[EventBus] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """Initialize the controller with dependencies.

        Args:
            deps: AppDependencies container with all required components.
            event_bus: Optional event bus (defaults to the container's).
            clock: Timestamp source for successful fetches.
        """
        self.deps = deps
        self.event_bus = event_bus or deps.event_bus or EventBus(async_mode=False)
        self.scheduler = RefreshScheduler(
            deps.property_store,
            deps.token_provider,
            deps.analytics_client,
            deps.telemetry,
            event_bus=self.event_bus,
            clock=clock,
        )
        self.scheduler.sync_properties(deps.property_store.properties)
        self.timer = RefreshTimer(self._on_timer, deps.settings.refresh_interval)
        self._running = False

        deps.property_store.subscribe(self._on_properties_changed)
        deps.connectivity_monitor.subscribe(self._on_connectivity_changed)
        deps.settings.subscribe(self._on_interval_changed)

        logger.info("AppController initialized")

    # === Lifecycle ===

    def start(self) -> None:
        """Start monitoring and run the first refresh if signed in."""
        logger.info("Starting AppController...")
        self._running = True
        self.event_bus.publish(EventType.APP_STARTING)

        self.deps.connectivity_monitor.start()
        self.timer.start()

        if self.is_signed_in:
            try:
                self.deps.token_provider.restore_session()
            except TokenError as e:
                self.deps.telemetry.record(
                    events.SESSION_RESTORATION_FAILURE, "AppController.start", e
                )
            else:
                self.request_refresh("startup")
        else:
            self.deps.telemetry.record(
                events.SIGNED_OUT_STATE,
                "AppController.start",
                context={"sign_out_reason": "session_restore_failed", "no_user_and_no_error": True},
            )

        logger.info("AppController started")

    def stop(self) -> None:
        """Stop timers and wait briefly for an in-flight pass."""
        logger.info("Stopping AppController...")
        self._running = False
        self.timer.stop()
        self.deps.connectivity_monitor.stop()
        if not self.scheduler.shutdown(timeout=INTERVALS.SHUTDOWN_WAIT_SECONDS):
            logger.warning("Refresh pass still running at shutdown")
        self.event_bus.publish(EventType.APP_STOPPING)
        self.deps.telemetry.shutdown()
        logger.info("AppController stopped")

    # === View ===

    @property
    def is_signed_in(self) -> bool:
        return self.deps.token_provider.has_credentials()

    def view(self) -> ControllerView:
        return ControllerView(
            properties=self.deps.property_store.properties,
            property_states=self.scheduler.states,
        )

    def title(self) -> TitleModel:
        view = self.view()
        return build_title(view.properties, view.property_states, signed_in=self.is_signed_in)

    @staticmethod
    def google_analytics_url(property_id: str) -> str:
        """Realtime overview page for a property resource name."""
        return API.WEB_REALTIME_URL.format(numeric_id=numeric_property_id(property_id))

    # === Property edits ===

    def add_property(self, candidate: Union[ConfiguredProperty, RemoteProperty]) -> AddResult:
        result = self.deps.property_store.add(candidate)
        if not result.ok:
            logger.debug(f"Add rejected: {result.rejection.value}")
        return result

    def remove_properties(self, local_ids: Iterable[str]) -> int:
        return self.deps.property_store.remove(local_ids)

    def update_property(self, local_id: str,
                        mutator: Callable[[ConfiguredProperty], Optional[ConfiguredProperty]]) -> ConfiguredProperty:
        return self.deps.property_store.update(local_id, mutator)

    def move_property(self, source_id: str, target_id: str) -> bool:
        return self.deps.property_store.move(source_id, target_id)

    def move_property_up(self, local_id: str) -> bool:
        """Swap a property with the one displayed before it."""
        ordered = self.deps.property_store.properties
        index = next((i for i, p in enumerate(ordered) if p.id == local_id), None)
        if not index:
            return False
        return self.move_property(local_id, ordered[index - 1].id)

    def available_properties(self) -> List[RemoteProperty]:
        """Remote properties that are not configured yet.

        Raises:
            TokenError: Not signed in or the token could not be refreshed.
            FetchError: The Admin API call failed.
        """
        source = "AppController.available_properties"
        try:
            token = self.deps.token_provider.fresh_token()
            remote = self.deps.analytics_client.list_all_properties(token)
        except TokenError as e:
            self.deps.telemetry.record(events.TOKEN_REFRESH_FAILURE, source, e)
            raise
        except FetchError as e:
            self.deps.telemetry.record(events.API_ERROR, source, e, {"endpoint": e.details.get("endpoint")})
            raise
        store = self.deps.property_store
        return [p for p in remote if not store.contains_property_id(p.name)]

    # === Refresh triggers ===

    def request_refresh(self, reason: str = "manual") -> bool:
        if not self.is_signed_in:
            logger.debug(f"Skipping refresh ({reason}): signed out")
            return False
        return self.scheduler.request_refresh(reason)

    def _on_timer(self) -> None:
        self.request_refresh("timer")

    def _on_properties_changed(self, properties: List[ConfiguredProperty]) -> None:
        self.scheduler.sync_properties(properties)
        self.event_bus.publish(EventType.PROPERTIES_CHANGED, {"count": len(properties)})
        self.request_refresh("properties changed")

    def _on_connectivity_changed(self, reachable: bool) -> None:
        self.event_bus.publish(EventType.CONNECTIVITY_CHANGED, {"reachable": reachable})
        self.scheduler.handle_connectivity(reachable, refresh=self.request_refresh)

    # === Settings ===

    @property
    def refresh_interval(self) -> int:
        return self.deps.settings.refresh_interval

    def set_refresh_interval(self, seconds: int) -> None:
        self.deps.settings.set_refresh_interval(seconds)

    def _on_interval_changed(self, seconds: int) -> None:
        self.timer.interval = seconds
        self.event_bus.publish(EventType.SETTINGS_CHANGED, {"refresh_interval": seconds})

    # === Account ===

    def sign_out(self) -> None:
        self.deps.token_provider.sign_out()
        self.deps.telemetry.record(
            events.SIGNED_OUT_STATE,
            "AppController.sign_out",
            context={"sign_out_reason": "user_initiated"},
        )
        self.event_bus.publish(EventType.AUTH_STATE_CHANGED, {"signed_in": False})

"""Refresh scheduling for configured properties.

The scheduler owns the per-property fetch state and runs refresh passes:
one worker thread walks the properties in display order and fetches each
one's real-time active users, one request at a time. Requests that arrive
while a pass is running are coalesced into a single follow-up pass.

    IDLE --request--> REFRESHING --request--> REFRESHING_WITH_PENDING
      ^                   |                          |
      +---pass done-------+      pass done: start another pass

Usage:
    scheduler = RefreshScheduler(store, token_provider, client, telemetry)
    scheduler.sync_properties(store.properties)
    scheduler.request_refresh("timer")
"""
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from analytics import telemetry as events
from analytics.models import ConfiguredProperty, PropertyState
from app.events import EventBus, EventType
from config import LogContext, get_logger, log_exception
from config.exceptions import FetchError, HttpStatusError, TokenError

logger = get_logger(__name__)

StateListener = Callable[[str, PropertyState], None]


class RefreshPhase(Enum):
    """Where the scheduler is in its refresh cycle."""
    IDLE = "idle"
    REFRESHING = "refreshing"
    REFRESHING_WITH_PENDING = "refreshing_with_pending"


class RefreshScheduler:
    """Serializes refresh passes and tracks PropertyState per property.

    All reads and writes of the phase, the pending flag and the state map
    happen under one lock. Token and HTTP calls happen outside it, on the
    pass worker thread.

    Attributes:
        passes_completed: Number of passes finished since construction.
    """

    SOURCE = "RefreshScheduler"

    def __init__(self, property_store, token_provider, analytics_client, telemetry,
                 event_bus: Optional[EventBus] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """Initialize the scheduler.

        Args:
            property_store: Supplies `properties` (sorted) and `contains(id)`.
            token_provider: Supplies `fresh_token()`.
            analytics_client: Supplies `fetch_active_users(token, property_id)`.
            telemetry: ObservabilitySink with `record(event, source, error, context)`.
            event_bus: Optional bus for PROPERTY_STATE_CHANGED and REFRESH_* events.
            clock: Returns the timestamp stored on successful fetches.
        """
        self._store = property_store
        self._token_provider = token_provider
        self._client = analytics_client
        self._telemetry = telemetry
        self._event_bus = event_bus
        self._clock = clock

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._phase = RefreshPhase.IDLE
        self._states: Dict[str, PropertyState] = {}
        self._was_unavailable = False
        self._accepting = True
        self._listeners: List[StateListener] = []
        self.passes_completed = 0

    # === Read-only view ===

    @property
    def phase(self) -> RefreshPhase:
        with self._lock:
            return self._phase

    @property
    def is_refreshing(self) -> bool:
        return self.phase is not RefreshPhase.IDLE

    @property
    def states(self) -> Dict[str, PropertyState]:
        """Copy of the state map keyed by local property id."""
        with self._lock:
            return dict(self._states)

    def state_for(self, local_id: str) -> PropertyState:
        with self._lock:
            return self._states.get(local_id, PropertyState.initial())

    def has_any_error(self) -> bool:
        with self._lock:
            return any(s.has_error for s in self._states.values())

    @property
    def was_unavailable(self) -> bool:
        with self._lock:
            return self._was_unavailable

    def subscribe(self, listener: StateListener) -> None:
        """Call `listener(local_id, state)` after every state change."""
        with self._lock:
            self._listeners.append(listener)

    # === State set ===

    def sync_properties(self, properties: Iterable[ConfiguredProperty]) -> None:
        """Give new properties an initial state and drop removed ones."""
        ids = {p.id for p in properties}
        with self._lock:
            for local_id in list(self._states):
                if local_id not in ids:
                    del self._states[local_id]
            for local_id in ids:
                self._states.setdefault(local_id, PropertyState.initial())
        logger.debug(f"State set synced to {len(ids)} properties")

    # === Triggers ===

    def request_refresh(self, reason: str = "manual") -> bool:
        """Ask for a refresh pass.

        Starts a pass when idle. While a pass is running the request only
        sets the pending flag, so any number of calls during one pass
        result in exactly one follow-up pass.

        Returns:
            True if this call started a pass.
        """
        with self._lock:
            if not self._accepting:
                return False
            if self._phase is RefreshPhase.IDLE:
                self._phase = RefreshPhase.REFRESHING
                start = True
            else:
                self._phase = RefreshPhase.REFRESHING_WITH_PENDING
                start = False

        if start:
            logger.debug(f"Refresh requested ({reason}), starting pass")
            threading.Thread(target=self._run_passes, daemon=True, name="Refresh-Pass").start()
        else:
            logger.debug(f"Refresh requested ({reason}) during a pass, coalesced")
        return start

    def handle_connectivity(self, reachable: bool,
                            refresh: Optional[Callable[[str], bool]] = None) -> bool:
        """React to a network reachability change.

        Losing the network only remembers it. Regaining it refreshes if the
        network was lost before or any property is showing an error.

        Args:
            reachable: Whether a usable interface is up.
            refresh: Called instead of request_refresh(), so the owner can
                apply its own checks (such as being signed in).

        Returns:
            True if a refresh was requested.
        """
        with self._lock:
            if not reachable:
                self._was_unavailable = True
                return False
            should_refresh = self._was_unavailable or any(
                s.has_error for s in self._states.values()
            )
            self._was_unavailable = False

        if should_refresh:
            (refresh or self.request_refresh)("connectivity restored")
        return should_refresh

    # === Passes ===

    def _run_passes(self) -> None:
        while True:
            try:
                self._run_pass()
            except Exception as e:
                # _refresh_property handles its own failures; this is a bug guard
                log_exception(logger, "Refresh pass aborted", e)

            with self._lock:
                self.passes_completed += 1
                if self._phase is RefreshPhase.REFRESHING_WITH_PENDING and self._accepting:
                    self._phase = RefreshPhase.REFRESHING
                    continue
                self._phase = RefreshPhase.IDLE
                self._idle.notify_all()
                return

    def _run_pass(self) -> None:
        properties = self._store.properties
        self._publish(EventType.REFRESH_STARTED, {"count": len(properties)})

        with LogContext(logger, f"Refresh pass over {len(properties)} properties"):
            for prop in properties:
                self._refresh_property(prop)

        self._publish(EventType.REFRESH_FINISHED, {"count": len(properties)})

    def _refresh_property(self, prop: ConfiguredProperty) -> None:
        source = f"{self.SOURCE}.refresh_property"
        context = {"property_id": prop.property_id}

        current = self.state_for(prop.id)
        self._set_state(prop.id, current.loading())

        try:
            token = self._token_provider.fresh_token()
        except TokenError as e:
            self._set_state(prop.id, PropertyState.failed())
            self._telemetry.record(events.TOKEN_REFRESH_FAILURE, source, e, context)
            return
        except Exception as e:
            self._set_state(prop.id, PropertyState.failed())
            self._telemetry.record(events.ERROR_STATE, source, e, context)
            return

        try:
            count = self._client.fetch_active_users(token, prop.property_id)
        except FetchError as e:
            self._set_state(prop.id, PropertyState.failed())
            api_context = dict(context)
            api_context["endpoint"] = e.details.get("endpoint")
            if isinstance(e, HttpStatusError):
                api_context["http_status_code"] = e.status_code
                api_context["response_body"] = e.body
            self._telemetry.record(events.API_ERROR, source, e, api_context)
            return
        except Exception as e:
            self._set_state(prop.id, PropertyState.failed())
            self._telemetry.record(events.ERROR_STATE, source, e, context)
            return

        self._set_state(prop.id, PropertyState.succeeded(count, self._clock()))

    def _set_state(self, local_id: str, state: PropertyState) -> bool:
        """Store and publish a state, unless the property was removed meanwhile."""
        with self._lock:
            if not self._store.contains(local_id):
                self._states.pop(local_id, None)
                logger.debug(f"Discarding state for removed property {local_id}")
                return False
            self._states[local_id] = state
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(local_id, state)
            except Exception as e:
                logger.error(f"Error in state listener: {e}", exc_info=True)
        self._publish(EventType.PROPERTY_STATE_CHANGED, {"id": local_id, "state": state})
        return True

    def _publish(self, event_type: EventType, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event_type, data, source=self.SOURCE)

    # === Lifecycle ===

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no pass is running. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._phase is RefreshPhase.IDLE, timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Stop accepting requests, drop any pending pass and wait for the current one."""
        with self._lock:
            self._accepting = False
            if self._phase is RefreshPhase.REFRESHING_WITH_PENDING:
                self._phase = RefreshPhase.REFRESHING
        logger.debug("RefreshScheduler shutting down")
        return self.wait_until_idle(timeout)

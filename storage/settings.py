"""User settings for DataBar."""
import threading
from typing import Callable, List, Tuple

from config import INTERVALS, STORAGE, get_logger
from config.exceptions import ConfigurationError

logger = get_logger(__name__)

IntervalListener = Callable[[int], None]


def interval_label(seconds: int) -> str:
    """Human label for a refresh interval, e.g. "2 minutes"."""
    if seconds < 60:
        return f"{seconds} seconds"
    minutes = seconds // 60
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


class SettingsManager:
    """Reads and writes user settings in the preferences key-value store."""

    def __init__(self, kv_store):
        self._kv = kv_store
        self._lock = threading.Lock()
        self._listeners: List[IntervalListener] = []
        self._refresh_interval = self._load_refresh_interval()

    def _load_refresh_interval(self) -> int:
        raw = self._kv.get(STORAGE.REFRESH_INTERVAL_KEY)
        if raw is None:
            return INTERVALS.DEFAULT_REFRESH_SECONDS
        try:
            value = int(raw.decode('utf-8'))
        except (UnicodeDecodeError, ValueError):
            logger.warning(f"Ignoring unreadable refresh interval {raw!r}")
            return INTERVALS.DEFAULT_REFRESH_SECONDS
        if value not in INTERVALS.REFRESH_OPTIONS_SECONDS:
            logger.warning(f"Ignoring unsupported refresh interval {value}s")
            return INTERVALS.DEFAULT_REFRESH_SECONDS
        return value

    # === Refresh Interval ===

    @property
    def refresh_interval(self) -> int:
        """Seconds between periodic refresh passes."""
        return self._refresh_interval

    def set_refresh_interval(self, seconds: int) -> None:
        """Persist a new refresh interval and notify listeners.

        Raises:
            ConfigurationError: The value is not one of the offered options.
        """
        seconds = int(seconds)
        if seconds not in INTERVALS.REFRESH_OPTIONS_SECONDS:
            raise ConfigurationError(
                "Unsupported refresh interval",
                {"value": seconds, "options": list(INTERVALS.REFRESH_OPTIONS_SECONDS)},
            )
        with self._lock:
            if seconds == self._refresh_interval:
                return
            self._kv.set(STORAGE.REFRESH_INTERVAL_KEY, str(seconds).encode('utf-8'))
            self._refresh_interval = seconds
            listeners = list(self._listeners)

        logger.info(f"Refresh interval set to {seconds}s")
        for listener in listeners:
            try:
                listener(seconds)
            except Exception as e:
                logger.error(f"Error in settings listener: {e}", exc_info=True)

    def get_refresh_interval_options(self) -> List[Tuple[int, str]]:
        """Available intervals as (seconds, label) pairs."""
        return [(s, interval_label(s)) for s in INTERVALS.REFRESH_OPTIONS_SECONDS]

    def subscribe(self, listener: IntervalListener) -> None:
        with self._lock:
            self._listeners.append(listener)

"""Network reachability monitoring.

Polls the network interfaces with psutil and notifies subscribers when the
machine goes from having a usable interface to having none, or back.
"""
import ipaddress
import socket
import threading
from typing import Callable, List, Optional

import psutil

from config import INTERVALS, get_logger

logger = get_logger(__name__)

ConnectivityHandler = Callable[[bool], None]


def has_usable_interface() -> bool:
    """True if any non-loopback interface is up with a routable address."""
    try:
        stats = psutil.net_if_stats()
        addresses = psutil.net_if_addrs()
    except (OSError, RuntimeError) as e:
        logger.debug(f"Could not read network interfaces: {e}")
        return False

    for name, if_stats in stats.items():
        if not if_stats.isup:
            continue
        for addr in addresses.get(name, []):
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            try:
                ip = ipaddress.ip_address(addr.address.split('%')[0])
            except ValueError:
                continue
            if ip.is_loopback or ip.is_link_local:
                continue
            return True
    return False


class ConnectivityMonitor:
    """Emits a deduplicated "network reachable" signal.

    Subscribers are called from the polling thread, only when the value
    differs from the previous one.

    Example:
        >>> monitor = ConnectivityMonitor()
        >>> monitor.subscribe(lambda up: print("online" if up else "offline"))
        >>> monitor.start()
    """

    def __init__(self, probe: Callable[[], bool] = has_usable_interface,
                 interval: float = INTERVALS.CONNECTIVITY_POLL_SECONDS):
        self._probe = probe
        self._interval = interval
        self._subscribers: List[ConnectivityHandler] = []
        self._lock = threading.Lock()
        self._reachable: Optional[bool] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_reachable(self) -> bool:
        if self._reachable is None:
            return self._probe()
        return self._reachable

    def subscribe(self, handler: ConnectivityHandler) -> None:
        with self._lock:
            self._subscribers.append(handler)

    def unsubscribe(self, handler: ConnectivityHandler) -> bool:
        with self._lock:
            try:
                self._subscribers.remove(handler)
                return True
            except ValueError:
                return False

    def check(self) -> Optional[bool]:
        """Probe once; notify subscribers and return the new value on change.

        The first probe only records the baseline. Returns None when the
        value did not change.
        """
        reachable = bool(self._probe())
        with self._lock:
            previous = self._reachable
            self._reachable = reachable
            if previous is None or previous == reachable:
                return None
            handlers = list(self._subscribers)

        logger.info(f"Network {'reachable' if reachable else 'unreachable'}")
        for handler in handlers:
            try:
                handler(reachable)
            except Exception as e:
                logger.error(f"Error in connectivity handler: {e}", exc_info=True)
        return reachable

    def _poll_loop(self) -> None:
        while not self._stop.wait(self._interval):
            self.check()

    def start(self) -> None:
        """Record the current status and start polling in a daemon thread."""
        if self._thread is not None:
            return
        self._stop.clear()
        self.check()
        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name="Connectivity-Monitor"
        )
        self._thread.start()
        logger.debug(f"ConnectivityMonitor started, reachable={self._reachable}")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        self._thread = None
        logger.debug("ConnectivityMonitor stopped")

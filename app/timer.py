"""Timers for the menu bar app.

RefreshTimer drives periodic refresh passes from a plain background thread.
MenuAwareTimer runs UI callbacks on the main thread, including while the
menu is open (rumps.Timer pauses during menu tracking).

Usage:
    from app.timer import RefreshTimer

    timer = RefreshTimer(lambda: scheduler.request_refresh("timer"), interval=30)
    timer.start()
    timer.interval = 60  # takes effect immediately
"""

import threading
import time
from typing import Callable, Optional

from config import get_logger

logger = get_logger(__name__)


class RefreshTimer:
    """Calls a function every `interval` seconds on a daemon thread.

    Changing the interval restarts the current wait, so a shorter interval
    doesn't have to wait out the old one.
    """

    def __init__(self, callback: Callable[[], object], interval: float):
        self._callback = callback
        self._interval = float(interval)
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        with self._lock:
            self._interval = float(value)
        self._wakeup.set()
        logger.debug(f"RefreshTimer interval set to {value}s")

    @property
    def is_running(self) -> bool:
        return self._running

    def _timer_loop(self) -> None:
        while self._running:
            with self._lock:
                interval = self._interval
            deadline = time.monotonic() + interval
            interrupted = self._wakeup.wait(interval)
            self._wakeup.clear()
            if not self._running:
                break
            if interrupted and time.monotonic() < deadline:
                continue  # interval changed, start a fresh wait
            self.ticks += 1
            try:
                self._callback()
            except Exception as e:
                logger.error(f"RefreshTimer callback failed: {e}", exc_info=True)

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._wakeup.clear()
        self._thread = threading.Thread(target=self._timer_loop, daemon=True, name="Refresh-Timer")
        self._thread.start()
        logger.debug(f"RefreshTimer started with interval {self._interval}s")

    def stop(self) -> None:
        self._running = False
        self._wakeup.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None
        logger.debug("RefreshTimer stopped")


# Objective-C helper class, created on first use
_TimerCallbackHelper = None
_TimerCallbackHelperLock = threading.Lock()


def _get_timer_callback_helper():
    """Get or create the NSObject subclass that hops onto the main thread."""
    global _TimerCallbackHelper

    if _TimerCallbackHelper is not None:
        return _TimerCallbackHelper

    with _TimerCallbackHelperLock:
        if _TimerCallbackHelper is not None:
            return _TimerCallbackHelper

        from Foundation import NSObject

        class _MenuAwareTimerHelper(NSObject):
            """Dispatches timer callbacks to the main thread."""

            callback_ref = None
            timer_ref = None

            def doCallback_(self, _):
                if self.callback_ref and self.timer_ref and self.timer_ref._running:
                    try:
                        self.callback_ref(self.timer_ref)
                    except Exception as e:
                        logger.error(f"MenuAwareTimer callback failed: {e}", exc_info=True)

        _TimerCallbackHelper = _MenuAwareTimerHelper

    return _TimerCallbackHelper


class MenuAwareTimer:
    """Timer whose callback runs on the main thread, even during menu tracking.

    Example:
        >>> timer = MenuAwareTimer(redraw_title, interval=1.0)
        >>> timer.start()
    """

    def __init__(self, callback: Callable, interval: float):
        """Initialize the timer.

        Args:
            callback: Called with the timer as argument on each tick.
            interval: Seconds between ticks.
        """
        self._callback = callback
        self._interval = interval
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._helper = None

    def _timer_loop(self) -> None:
        helper = _get_timer_callback_helper().alloc().init()
        helper.callback_ref = self._callback
        helper.timer_ref = self
        self._helper = helper

        while self._running:
            time.sleep(self._interval)
            if self._running:
                helper.performSelectorOnMainThread_withObject_waitUntilDone_(
                    "doCallback:", None, False
                )

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._timer_loop, daemon=True, name="MenuAware-Timer")
        self._thread.start()
        logger.debug(f"MenuAwareTimer started with interval {self._interval}s")

    def stop(self) -> None:
        self._running = False
        self._helper = None
        self._thread = None
        logger.debug("MenuAwareTimer stopped")

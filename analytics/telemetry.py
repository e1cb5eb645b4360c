"""Error telemetry written as JSON lines.

record() never blocks on disk I/O and never raises into the caller:
entries are queued and appended to ~/.databar/telemetry.log by a worker
thread, and every failure inside the sink is only logged.
"""
import json
import platform
import queue
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from config import STORAGE, get_logger

logger = get_logger(__name__)

APP_VERSION = "2.0.0"

# Event names
ERROR_STATE = "error_state"
TOKEN_REFRESH_FAILURE = "token_refresh_failure"
API_ERROR = "api_error"
SIGNED_OUT_STATE = "signed_out_state"
SESSION_RESTORATION_FAILURE = "session_restoration_failure"

SENSITIVE_KEYS = ("password", "token", "secret", "credential", "auth")


def is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(word in lowered for word in SENSITIVE_KEYS)


def redact(context: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys that look like they hold secrets; stringify odd values."""
    safe: Dict[str, Any] = {}
    for key, value in context.items():
        if is_sensitive(key):
            continue
        if isinstance(value, dict):
            safe[key] = redact(value)
        elif isinstance(value, (str, int, float, bool)) or value is None:
            safe[key] = value
        else:
            safe[key] = str(value)
    return safe


def error_details(error: BaseException) -> Dict[str, Any]:
    """Describe an exception, following its __cause__ chain."""
    details: Dict[str, Any] = {
        "description": str(error),
        "type": type(error).__name__,
    }
    extra = getattr(error, "details", None)
    if isinstance(extra, dict) and extra:
        details["details"] = redact(extra)
    status = getattr(error, "status_code", None)
    if status is not None:
        details["code"] = status
    if error.__cause__ is not None and error.__cause__ is not error:
        details["underlying_error"] = error_details(error.__cause__)
    return details


class TelemetryLogger:
    """ObservabilitySink implementation.

    Attributes:
        log_file: Path of the JSON-lines file.
        async_mode: If True (default), entries are written by a worker thread.
    """

    def __init__(self, data_dir: Optional[Path] = None, async_mode: bool = True):
        if data_dir is None:
            data_dir = Path.home() / STORAGE.DATA_DIR_NAME
        self.log_file = Path(data_dir) / STORAGE.TELEMETRY_FILE
        self._async_mode = async_mode
        self._queue: queue.Queue = queue.Queue()
        self._running = False
        self._worker: Optional[threading.Thread] = None
        self._write_lock = threading.Lock()

        if async_mode:
            self._running = True
            self._worker = threading.Thread(
                target=self._process_entries, daemon=True, name="Telemetry-Worker"
            )
            self._worker.start()

    def record(self, event: str, source: str, error: Optional[BaseException] = None,
               context: Optional[Dict[str, Any]] = None) -> None:
        """Queue a telemetry entry. Never raises."""
        try:
            entry: Dict[str, Any] = {
                "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
                "event": event,
                "source": source,
                "app_version": APP_VERSION,
                "os_version": _os_version(),
            }
            if error is not None:
                entry["error"] = error_details(error)
            if context:
                context = dict(context)
                property_id = context.pop("property_id", None)
                if property_id is not None:
                    entry["property_id"] = property_id
                safe_context = redact(context)
                if safe_context:
                    entry["context"] = safe_context

            if error is not None:
                logger.warning(f"[{event}] {source}: {error}")
            else:
                logger.warning(f"[{event}] {source}")

            if self._async_mode:
                self._queue.put(entry)
            else:
                self._write(entry)
        except Exception as e:
            logger.error(f"Could not record telemetry event {event}: {e}", exc_info=True)

    def _process_entries(self) -> None:
        while self._running or not self._queue.empty():
            try:
                entry = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            self._write(entry)
            self._queue.task_done()

    def _write(self, entry: Dict[str, Any]) -> None:
        try:
            line = json.dumps(entry, sort_keys=True, default=str)
            with self._write_lock:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                with open(self.log_file, 'a', encoding='utf-8') as f:
                    f.write(line + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write telemetry entry: {e}")

    def shutdown(self, timeout: float = 1.0) -> None:
        """Stop the worker once the queued entries are written."""
        self._running = False
        if self._worker:
            self._worker.join(timeout=timeout)
        logger.debug("TelemetryLogger shut down")


def _os_version() -> str:
    mac_version = platform.mac_ver()[0]
    if mac_version:
        return f"macOS {mac_version}"
    return f"{platform.system()} {platform.release()}"

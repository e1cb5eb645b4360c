"""JSON-file backed key-value store for user preferences.

Plays the role UserDefaults plays for a native app: small values under
fixed keys, rewritten as a whole document on every change.
"""
import json
import threading
from pathlib import Path
from typing import Dict, Optional

from config import STORAGE, get_logger
from config.exceptions import StorageError

logger = get_logger(__name__)


class JsonKeyValueStore:
    """Persists UTF-8 values in a single JSON object on disk.

    Values are bytes at the API boundary and stored as text in the file.
    Every set()/remove() rewrites the whole document atomically.
    """

    DEFAULT_DATA_DIR = Path.home() / STORAGE.DATA_DIR_NAME
    DEFAULT_DATA_FILE = STORAGE.PREFERENCES_FILE

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir else self.DEFAULT_DATA_DIR
        self.data_file = self.data_dir / self.DEFAULT_DATA_FILE
        self._lock = threading.Lock()
        self._data: Dict[str, str] = {}
        self._ensure_data_dir()
        self._load()
        logger.info(f"JsonKeyValueStore initialized at {self.data_file}")

    def _ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _load(self) -> None:
        """Load the preferences document, starting empty if it is unreadable."""
        if not self.data_file.exists():
            self._data = {}
            logger.debug("No existing preferences file, starting fresh")
            return
        try:
            with open(self.data_file, encoding='utf-8') as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load preferences file: {e}")
            self._data = {}
            return

        if not isinstance(loaded, dict):
            logger.warning("Preferences file is not a JSON object, ignoring it")
            self._data = {}
            return
        self._data = {str(k): v for k, v in loaded.items() if isinstance(v, str)}
        logger.debug(f"Loaded {len(self._data)} preference keys")

    def _save(self, data: Dict[str, str]) -> None:
        """Write the whole document (temp file, then rename), then adopt it.

        self._data only changes once the new document is on disk.
        """
        try:
            temp_file = self.data_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, sort_keys=True)
            temp_file.replace(self.data_file)
        except OSError as e:
            logger.error(f"Error saving preferences: {e}")
            raise StorageError(f"Failed to save preferences: {e}", {"path": str(self.data_file)})
        self._data = data

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            value = self._data.get(key)
        return value.encode('utf-8') if value is not None else None

    def set(self, key: str, value: bytes) -> None:
        text = value.decode('utf-8') if isinstance(value, (bytes, bytearray)) else str(value)
        with self._lock:
            data = dict(self._data)
            data[key] = text
            self._save(data)

    def remove(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            data = dict(self._data)
            del data[key]
            self._save(data)

"""Persisted, ordered collection of configured properties.

Owns add/remove/move/update of the properties shown in the menu bar, keeps
`order` dense (0..n-1) and writes the whole collection to the key-value
store after every mutation. Also migrates the single-property format used
by earlier app versions.
"""
import json
import threading
from typing import Callable, Iterable, List, Optional, Union

from analytics.models import (
    AddRejection,
    AddResult,
    ConfiguredProperty,
    RemoteProperty,
    default_icon_for,
    normalize_label,
)
from config import ICONS, LIMITS, STORAGE, get_logger
from config.exceptions import PropertyNotFoundError

logger = get_logger(__name__)

PropertiesListener = Callable[[List[ConfiguredProperty]], None]

LEGACY_PLACEHOLDER_NAME = "Property"


class PropertyStore:
    """Repository for ConfiguredProperty records.

    All reads return copies sorted by `order`; all mutations go through
    the internal lock, persist synchronously and then notify listeners
    (outside the lock) with the new snapshot.

    Attributes:
        is_initialized: False until the initial load and migration finished.
            Listeners are never called before that.
    """

    def __init__(self, kv_store, max_properties: int = LIMITS.MAX_PROPERTIES):
        self._kv = kv_store
        self.max_properties = max_properties
        self._lock = threading.RLock()
        self._properties: List[ConfiguredProperty] = []
        self._listeners: List[PropertiesListener] = []
        self.is_initialized = False
        self._load()
        self.is_initialized = True

    # === Loading and persistence ===

    def _load(self) -> None:
        self._properties = self._read_collection()
        if not self._properties:
            self._migrate_legacy()
        logger.info(f"PropertyStore loaded {len(self._properties)} properties")

    def _read_collection(self) -> List[ConfiguredProperty]:
        raw = self._kv.get(STORAGE.PROPERTIES_KEY)
        if not raw:
            return []
        try:
            records = json.loads(raw.decode('utf-8'))
            properties = [ConfiguredProperty.from_dict(r) for r in records]
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Stored properties are unreadable, starting empty: {e}")
            return []

        properties.sort(key=lambda p: p.order)
        seen = set()
        unique = []
        for prop in properties:
            if prop.property_id in seen:
                logger.warning(f"Dropping duplicate stored property {prop.property_id}")
                continue
            seen.add(prop.property_id)
            unique.append(prop)
        if len(unique) > self.max_properties:
            logger.warning(f"Stored collection has {len(unique)} properties, keeping {self.max_properties}")
            unique = unique[:self.max_properties]
        _renumber(unique)
        return unique

    def _migrate_legacy(self) -> None:
        """Turn the old single selected property into a one-entry collection."""
        raw = self._kv.get(STORAGE.LEGACY_PROPERTY_KEY)
        legacy_id = raw.decode('utf-8').strip() if raw else ""
        if not legacy_id:
            return

        migrated = ConfiguredProperty(
            property_id=legacy_id,
            property_name=LEGACY_PLACEHOLDER_NAME,
            order=0,
        )
        self._save([migrated])
        self._properties = [migrated]
        self._kv.remove(STORAGE.LEGACY_PROPERTY_KEY)
        logger.info(f"Migrated legacy property {legacy_id}")

    def _save(self, properties: List[ConfiguredProperty]) -> None:
        payload = json.dumps([p.to_dict() for p in properties])
        self._kv.set(STORAGE.PROPERTIES_KEY, payload.encode('utf-8'))

    def _commit(self, properties: List[ConfiguredProperty]) -> List[ConfiguredProperty]:
        """Renumber, persist, then swap in the new list. Caller holds the lock."""
        _renumber(properties)
        self._save(properties)
        self._properties = properties
        return self._snapshot()

    # === Change notification ===

    def subscribe(self, listener: PropertiesListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: PropertiesListener) -> bool:
        with self._lock:
            try:
                self._listeners.remove(listener)
                return True
            except ValueError:
                return False

    def _notify(self, snapshot: List[ConfiguredProperty]) -> None:
        if not self.is_initialized:
            return
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Error in properties listener: {e}", exc_info=True)

    # === Reads ===

    def _snapshot(self) -> List[ConfiguredProperty]:
        return [p.copy() for p in sorted(self._properties, key=lambda p: p.order)]

    @property
    def properties(self) -> List[ConfiguredProperty]:
        with self._lock:
            return self._snapshot()

    def __len__(self) -> int:
        with self._lock:
            return len(self._properties)

    def get(self, local_id: str) -> Optional[ConfiguredProperty]:
        with self._lock:
            for prop in self._properties:
                if prop.id == local_id:
                    return prop.copy()
        return None

    def contains(self, local_id: str) -> bool:
        with self._lock:
            return any(p.id == local_id for p in self._properties)

    def contains_property_id(self, property_id: str) -> bool:
        with self._lock:
            return any(p.property_id == property_id for p in self._properties)

    @property
    def is_full(self) -> bool:
        return len(self) >= self.max_properties

    # === Mutations ===

    def add(self, candidate: Union[ConfiguredProperty, RemoteProperty]) -> AddResult:
        """Append a property at the end of the display order.

        Returns:
            AddResult with the stored copy, or with a rejection reason
            (AT_CAPACITY, DUPLICATE) and the collection unchanged.
        """
        if isinstance(candidate, RemoteProperty):
            candidate = candidate.to_configured()

        with self._lock:
            if len(self._properties) >= self.max_properties:
                logger.debug(f"Rejected {candidate.property_id}: at capacity")
                return AddResult(rejection=AddRejection.AT_CAPACITY)
            if any(p.property_id == candidate.property_id for p in self._properties):
                logger.debug(f"Rejected {candidate.property_id}: duplicate")
                return AddResult(rejection=AddRejection.DUPLICATE)

            added = candidate.copy()
            if not added.display_icon or added.display_icon == ICONS.DEFAULT:
                added.display_icon = default_icon_for(added.property_name)
            added.display_label = normalize_label(added.display_label)
            added.order = len(self._properties)

            snapshot = self._commit(self._sorted() + [added])

        logger.info(f"Added property {added.property_id} ({added.property_name})")
        self._notify(snapshot)
        return AddResult(added=added.copy())

    def remove(self, local_ids: Iterable[str]) -> int:
        """Remove properties by local id. Unknown ids are ignored.

        Returns:
            Number of properties removed.
        """
        ids = set(local_ids)
        with self._lock:
            remaining = [p for p in self._sorted() if p.id not in ids]
            removed = len(self._properties) - len(remaining)
            if not removed:
                return 0
            snapshot = self._commit(remaining)

        logger.info(f"Removed {removed} properties")
        self._notify(snapshot)
        return removed

    def move(self, source_id: str, target_id: str) -> bool:
        """Move a property into the position currently held by another.

        Returns:
            False (and no change) if the ids are equal or either is unknown.
        """
        if source_id == target_id:
            return False

        with self._lock:
            ordered = self._sorted()
            positions = {p.id: index for index, p in enumerate(ordered)}
            if source_id not in positions or target_id not in positions:
                return False

            target_index = positions[target_id]
            moving = ordered.pop(positions[source_id])
            ordered.insert(target_index, moving)
            snapshot = self._commit(ordered)

        logger.debug(f"Moved {source_id} to position {target_index}")
        self._notify(snapshot)
        return True

    def update(self, local_id: str,
               mutator: Callable[[ConfiguredProperty], Optional[ConfiguredProperty]]) -> ConfiguredProperty:
        """Edit the icon, label or custom name of a property.

        The mutator receives a copy and may modify it in place or return a
        new object; only the mutable display fields are taken from it.

        Raises:
            PropertyNotFoundError: No property has that local id.
        """
        with self._lock:
            ordered = self._sorted()
            current = next((p for p in ordered if p.id == local_id), None)
            if current is None:
                raise PropertyNotFoundError("Property not found", {"id": local_id})

            draft = current.copy()
            result = mutator(draft)
            edited = result if isinstance(result, ConfiguredProperty) else draft

            current_index = ordered.index(current)
            updated = current.copy()
            updated.display_icon = edited.display_icon or ICONS.DEFAULT
            updated.display_label = normalize_label(edited.display_label)
            updated.custom_display_name = (edited.custom_display_name or "").strip() or None
            ordered[current_index] = updated
            snapshot = self._commit(ordered)

        logger.debug(f"Updated property {updated.property_id}")
        self._notify(snapshot)
        return updated.copy()

    def _sorted(self) -> List[ConfiguredProperty]:
        """Working copies in display order, so a failed save leaves no trace."""
        return [p.copy() for p in sorted(self._properties, key=lambda p: p.order)]


def _renumber(properties: List[ConfiguredProperty]) -> None:
    for index, prop in enumerate(properties):
        prop.order = index

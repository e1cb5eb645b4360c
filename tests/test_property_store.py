"""Tests for the persisted property collection."""
import json
import random
from unittest.mock import patch

import pytest

from analytics.models import AddRejection, ConfiguredProperty
from config import ICONS, STORAGE
from config.exceptions import PropertyNotFoundError, StorageError
from storage.kv_store import JsonKeyValueStore
from storage.property_store import LEGACY_PLACEHOLDER_NAME, PropertyStore
from tests.mocks import MockKeyValueStore, make_remote_property


def _prop(number: int, name: str = None) -> ConfiguredProperty:
    return ConfiguredProperty(property_id=f"properties/{number}", property_name=name or f"P{number}")


def _orders(store: PropertyStore):
    return [p.order for p in store.properties]


def _stored_records(kv: MockKeyValueStore):
    return json.loads(kv.get(STORAGE.PROPERTIES_KEY).decode("utf-8"))


class TestLoading:
    """Tests for reading the stored collection."""

    def test_empty_store(self, kv_store):
        """A fresh store has no properties and writes nothing."""
        store = PropertyStore(kv_store)
        assert store.properties == []
        assert kv_store.set_calls == 0
        assert store.is_initialized is True

    def test_loads_stored_collection(self, populated_kv_store):
        """Stored records come back in order with all fields."""
        store = PropertyStore(populated_kv_store)
        props = store.properties

        assert [p.property_id for p in props] == ["properties/1001", "properties/1002"]
        assert props[0].display_label == "WEB"
        assert props[1].effective_display_name == "Store"
        assert props[1].id == "AAAA-0002"

    def test_unreadable_collection_starts_empty(self):
        """Corrupt JSON is ignored rather than crashing construction."""
        kv = MockKeyValueStore({STORAGE.PROPERTIES_KEY: b"{not json"})
        store = PropertyStore(kv)
        assert store.properties == []

    def test_gapped_orders_are_renumbered(self):
        """Stored orders with gaps are made dense on load."""
        records = [
            _prop(1).to_dict() | {"order": 7},
            _prop(2).to_dict() | {"order": 3},
        ]
        kv = MockKeyValueStore({STORAGE.PROPERTIES_KEY: json.dumps(records).encode()})
        store = PropertyStore(kv)

        assert [p.property_id for p in store.properties] == ["properties/2", "properties/1"]
        assert _orders(store) == [0, 1]

    def test_stored_duplicates_dropped(self):
        """Only the first record per property id survives loading."""
        first, second = _prop(1, "First"), _prop(1, "Second")
        second.order = 1
        kv = MockKeyValueStore({
            STORAGE.PROPERTIES_KEY: json.dumps([first.to_dict(), second.to_dict()]).encode()
        })
        store = PropertyStore(kv)
        assert [p.property_name for p in store.properties] == ["First"]


class TestLegacyMigration:
    """Tests for migrating the single selected property."""

    def test_migrates_legacy_key(self):
        """The legacy id becomes the only entry and the key is removed."""
        kv = MockKeyValueStore({STORAGE.LEGACY_PROPERTY_KEY: b"propA"})
        store = PropertyStore(kv)

        props = store.properties
        assert len(props) == 1
        assert props[0].property_id == "propA"
        assert props[0].property_name == LEGACY_PLACEHOLDER_NAME
        assert props[0].order == 0
        assert kv.get(STORAGE.LEGACY_PROPERTY_KEY) is None
        assert _stored_records(kv)[0]["propertyId"] == "propA"

    def test_existing_collection_wins(self, populated_kv_store):
        """Migration only runs when the new-format collection is empty."""
        populated_kv_store.set(STORAGE.LEGACY_PROPERTY_KEY, b"propA")
        store = PropertyStore(populated_kv_store)

        assert not store.contains_property_id("propA")
        assert populated_kv_store.get(STORAGE.LEGACY_PROPERTY_KEY) == b"propA"

    def test_empty_legacy_value_is_ignored(self):
        """A blank legacy id migrates nothing."""
        kv = MockKeyValueStore({STORAGE.LEGACY_PROPERTY_KEY: b"  "})
        store = PropertyStore(kv)
        assert store.properties == []

    def test_migration_does_not_notify(self):
        """Listeners registered later never see the construction-time change."""
        kv = MockKeyValueStore({STORAGE.LEGACY_PROPERTY_KEY: b"propA"})
        store = PropertyStore(kv)
        received = []
        store.subscribe(received.append)
        assert received == []
        assert store.is_initialized


class TestAdd:
    """Tests for PropertyStore.add()."""

    def test_add_appends_with_next_order(self, kv_store):
        """Added properties go to the end of the display order."""
        store = PropertyStore(kv_store)
        store.add(_prop(1))
        result = store.add(_prop(2))

        assert result.ok
        assert result.added.order == 1
        assert _orders(store) == [0, 1]
        assert len(_stored_records(kv_store)) == 2

    def test_add_sixth_is_rejected(self, kv_store):
        """The collection holds at most five properties."""
        store = PropertyStore(kv_store)
        for n in range(1, 6):
            assert store.add(_prop(n)).ok
        before = store.properties

        result = store.add(_prop(6))

        assert not result.ok
        assert result.rejection is AddRejection.AT_CAPACITY
        assert store.properties == before
        assert store.is_full

    def test_duplicate_is_rejected(self, kv_store):
        """The same backend property cannot be configured twice."""
        store = PropertyStore(kv_store)
        store.add(_prop(1, "Site"))

        result = store.add(_prop(1, "Site again"))

        assert result.rejection is AddRejection.DUPLICATE
        assert len(store) == 1

    @pytest.mark.parametrize("name,icon", [
        ("iOS App", "iphone"),
        ("Marketing Website", "globe"),
        ("Online Shop", "cart.fill"),
        ("Company Blog", "doc.text.fill"),
        ("Mobile Web Store", "iphone"),
        ("Internal Dashboard", ICONS.DEFAULT),
    ])
    def test_default_icon_from_name(self, kv_store, name, icon):
        """Keyword rules pick the icon, first matching rule wins."""
        store = PropertyStore(kv_store)
        result = store.add(_prop(1, name))
        assert result.added.display_icon == icon

    def test_explicit_icon_kept(self, kv_store):
        """A non-default icon chosen by the caller is not overridden."""
        store = PropertyStore(kv_store)
        prop = _prop(1, "Shop")
        prop.display_icon = "star.fill"
        assert store.add(prop).property.display_icon == "star.fill"

    def test_add_remote_property(self, kv_store):
        """Admin API listings can be added directly."""
        store = PropertyStore(kv_store)
        result = store.add(make_remote_property(42, "Web Store", account_name="Acme"))

        assert result.added.property_id == "properties/42"
        assert result.added.account_display_name == "Acme"
        assert result.added.display_icon == "globe"

    def test_add_notifies_listeners(self, kv_store):
        """Listeners receive the new snapshot."""
        store = PropertyStore(kv_store)
        received = []
        store.subscribe(received.append)

        store.add(_prop(1))

        assert len(received) == 1
        assert received[0][0].property_id == "properties/1"

    def test_rejected_add_does_not_notify(self, kv_store):
        """Rejections leave listeners alone."""
        store = PropertyStore(kv_store)
        store.add(_prop(1))
        received = []
        store.subscribe(received.append)

        store.add(_prop(1))

        assert received == []

    def test_failed_save_leaves_collection_unchanged(self, kv_store):
        """A storage failure propagates and nothing changes in memory."""
        store = PropertyStore(kv_store)
        store.add(_prop(1))
        kv_store.fail_writes = True

        with pytest.raises(StorageError):
            store.add(_prop(2))

        assert [p.property_id for p in store.properties] == ["properties/1"]

    def test_failed_save_is_not_persisted_by_later_writes(self, temp_data_dir):
        """A rejected add never reaches disk, even after another setting is saved."""
        kv = JsonKeyValueStore(data_dir=temp_data_dir)
        store = PropertyStore(kv)
        store.add(_prop(1))

        with patch("storage.kv_store.open", side_effect=OSError("disk full"), create=True):
            with pytest.raises(StorageError):
                store.add(_prop(2))
        kv.set(STORAGE.REFRESH_INTERVAL_KEY, b"60")

        reloaded = PropertyStore(JsonKeyValueStore(data_dir=temp_data_dir))
        assert [p.property_id for p in reloaded.properties] == ["properties/1"]


class TestRemoveAndMove:
    """Tests for remove() and move()."""

    @pytest.fixture
    def store(self, kv_store):
        store = PropertyStore(kv_store)
        for n in (1, 2, 3):
            store.add(_prop(n))
        return store

    def _ids(self, store):
        return {p.property_id: p.id for p in store.properties}

    def test_remove_renumbers(self, store):
        """Removing from the middle closes the gap."""
        ids = self._ids(store)
        assert store.remove([ids["properties/2"]]) == 1

        assert [p.property_id for p in store.properties] == ["properties/1", "properties/3"]
        assert _orders(store) == [0, 1]

    def test_remove_unknown_is_noop(self, store, kv_store):
        """Unknown ids are ignored without writing or notifying."""
        writes = kv_store.set_calls
        received = []
        store.subscribe(received.append)

        assert store.remove(["missing"]) == 0
        assert kv_store.set_calls == writes
        assert received == []

    def test_move_last_to_first(self, store):
        """move(P3, P1) yields P3=0, P1=1, P2=2."""
        ids = self._ids(store)
        assert store.move(ids["properties/3"], ids["properties/1"])

        orders = {p.property_id: p.order for p in store.properties}
        assert orders == {"properties/3": 0, "properties/1": 1, "properties/2": 2}

    def test_move_first_to_last(self, store):
        """Moving down takes the target's position."""
        ids = self._ids(store)
        store.move(ids["properties/1"], ids["properties/3"])
        assert [p.property_id for p in store.properties] == [
            "properties/2", "properties/3", "properties/1"
        ]

    def test_move_invalid(self, store):
        """Same or unknown ids change nothing."""
        ids = self._ids(store)
        assert not store.move(ids["properties/1"], ids["properties/1"])
        assert not store.move("missing", ids["properties/1"])
        assert _orders(store) == [0, 1, 2]

    def test_orders_stay_dense_under_random_edits(self, kv_store):
        """Any sequence of add/remove/move keeps order == 0..n-1."""
        rng = random.Random(1234)
        store = PropertyStore(kv_store)
        next_number = 1
        for _ in range(200):
            props = store.properties
            action = rng.choice(["add", "remove", "move"])
            if action == "add":
                store.add(_prop(next_number))
                next_number += 1
            elif action == "remove" and props:
                store.remove([rng.choice(props).id])
            elif action == "move" and len(props) > 1:
                source, target = rng.sample(props, 2)
                store.move(source.id, target.id)

            assert _orders(store) == list(range(len(store)))
            if kv_store.get(STORAGE.PROPERTIES_KEY):
                assert sorted(r["order"] for r in _stored_records(kv_store)) == list(range(len(store)))


class TestUpdate:
    """Tests for update()."""

    def test_update_display_fields(self, kv_store):
        """Icon, label and custom name can be edited."""
        store = PropertyStore(kv_store)
        added = store.add(_prop(1, "Site")).added

        def edit(p):
            p.display_icon = "star.fill"
            p.display_label = " ab c "
            p.custom_display_name = "Main"

        updated = store.update(added.id, edit)

        assert updated.display_icon == "star.fill"
        assert updated.display_label == "AB"
        assert updated.effective_display_name == "Main"
        assert _stored_records(kv_store)[0]["customDisplayName"] == "Main"

    def test_update_ignores_identity_fields(self, kv_store):
        """id, property id, name and order cannot be changed through update()."""
        store = PropertyStore(kv_store)
        store.add(_prop(1))
        added = store.add(_prop(2)).added

        def edit(p):
            p.id = "HIJACKED"
            p.property_id = "properties/999"
            p.property_name = "Other"
            p.order = 0

        updated = store.update(added.id, edit)

        assert updated.id == added.id
        assert updated.property_id == "properties/2"
        assert updated.property_name == "P2"
        assert updated.order == 1

    def test_update_accepts_returned_copy(self, kv_store):
        """A mutator may return a new object instead of editing in place."""
        store = PropertyStore(kv_store)
        added = store.add(_prop(1)).added

        def edit(p):
            changed = p.copy()
            changed.display_label = "xyzw"
            return changed

        assert store.update(added.id, edit).display_label == "XYZ"

    def test_blank_label_and_name_cleared(self, kv_store):
        """Whitespace-only label and name are stored as None."""
        store = PropertyStore(kv_store)
        added = store.add(_prop(1)).added

        def edit(p):
            p.display_label = "   "
            p.custom_display_name = "  "

        updated = store.update(added.id, edit)
        assert updated.display_label is None
        assert updated.custom_display_name is None

    def test_update_unknown_raises(self, kv_store):
        """Unknown ids raise PropertyNotFoundError."""
        store = PropertyStore(kv_store)
        with pytest.raises(PropertyNotFoundError):
            store.update("missing", lambda p: None)

    def test_returned_copies_are_detached(self, kv_store):
        """Mutating a returned property doesn't touch the store."""
        store = PropertyStore(kv_store)
        store.add(_prop(1))
        store.properties[0].display_label = "NOPE"
        assert store.properties[0].display_label is None


class TestPersistenceRoundTrip:
    """Tests across store instances sharing the key-value store."""

    def test_second_instance_sees_edits(self, kv_store):
        """A new store over the same storage reads back the same collection."""
        first = PropertyStore(kv_store)
        first.add(_prop(1, "Blog"))
        first.add(_prop(2, "Shop"))
        ids = {p.property_id: p.id for p in first.properties}
        first.move(ids["properties/2"], ids["properties/1"])

        second = PropertyStore(kv_store)

        assert [(p.id, p.property_id, p.order, p.display_icon) for p in second.properties] == [
            (ids["properties/2"], "properties/2", 0, "cart.fill"),
            (ids["properties/1"], "properties/1", 1, "doc.text.fill"),
        ]

"""Tests for local persistent state."""

import sqlite3
from concurrent.futures import ThreadPoolExecutor

from storage import LocalStorage, PersistentState


class TestLocalStorage:
    """load / save / reset over named JSON slots."""

    def test_missing_slot_returns_default(self, storage):
        value, hydrated = storage.load("milk-farmers", ["default"])
        assert value == ["default"]
        assert hydrated is True

    def test_save_then_load(self, storage):
        assert storage.save("milk-farmers", [{"id": "F1"}]) is True
        value, _ = storage.load("milk-farmers", [])
        assert value == [{"id": "F1"}]

    def test_reset_then_load_returns_default(self, storage):
        storage.save("milk-farmers", [{"id": "F1"}])

        assert storage.reset("milk-farmers", []) == []
        assert storage.load("milk-farmers", ["default"])[0] == ["default"]

    def test_slots_are_independent(self, storage):
        storage.save("milk-farmers", [1])
        storage.save("milk-payments", [2])
        storage.reset("milk-farmers", [])

        assert storage.load("milk-payments", [])[0] == [2]

    def test_corrupt_json_falls_back(self, storage, caplog):
        storage.set_item("milk-farmers", "{not json")

        value, hydrated = storage.load("milk-farmers", ["default"])

        assert value == ["default"]
        assert hydrated is True
        assert "Failed to parse" in caplog.text

    def test_empty_slot_is_treated_as_absent(self, storage):
        storage.set_item("milk-farmers", "")
        assert storage.load("milk-farmers", ["default"])[0] == ["default"]

    def test_decoder_errors_fall_back(self, storage):
        storage.save("milk-farmers", [{"name": "no id"}])

        value, _ = storage.load("milk-farmers", [], decode=lambda data: [d["id"] for d in data])

        assert value == []

    def test_unavailable_storage(self, tmp_path):
        """A storage path in a missing directory degrades to in-memory only."""
        unavailable = LocalStorage(str(tmp_path / "missing" / "ledger.db"))

        assert unavailable.available is False
        assert unavailable.save("milk-farmers", [1]) is False
        assert unavailable.load("milk-farmers", ["default"]) == (["default"], True)
        assert unavailable.reset("milk-farmers", []) == []

    def test_no_storage_path(self):
        assert LocalStorage(None).available is False

    def test_write_failure_is_not_raised(self, storage, monkeypatch, caplog):
        def fail(key, value):
            raise sqlite3.OperationalError("database or disk is full")

        monkeypatch.setattr(storage, "set_item", fail)

        assert storage.save("milk-farmers", [1]) is False
        assert "Failed to write" in caplog.text

    def test_read_failure_is_not_raised(self, storage, monkeypatch):
        def fail(key):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(storage, "get_item", fail)

        assert storage.load("milk-farmers", ["default"]) == (["default"], True)

    def test_unserializable_value_is_not_raised(self, storage):
        assert storage.save("milk-farmers", {object()}) is False

    def test_shared_between_threads(self, storage):
        """Sessions on different threads can read and write through one instance."""
        def session(n):
            key = f"slot-{n}"
            for i in range(20):
                assert storage.save(key, [n, i]) is True
                assert storage.load(key, [])[0] == [n, i]
            return storage.load(key, [])[0]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(session, range(8)))

        assert results == [[n, 19] for n in range(8)]


class TestPersistentState:
    """Hydration and write-back of one slot."""

    def test_starts_unhydrated_with_default(self, storage):
        state = PersistentState("milk-farmers", ["default"], storage)

        assert state.hydrated is False
        assert state.value == ["default"]

    def test_hydrate_loads_stored_value_once(self, storage):
        storage.save("milk-farmers", ["stored"])
        state = PersistentState("milk-farmers", ["default"], storage)

        assert state.hydrate() == ["stored"]
        assert state.hydrated is True

        storage.save("milk-farmers", ["changed elsewhere"])
        assert state.hydrate() == ["stored"]

    def test_hydration_does_not_write(self, storage):
        state = PersistentState("milk-farmers", ["default"], storage)
        state.hydrate()

        assert storage.get_item("milk-farmers") is None

    def test_set_value_is_persisted(self, storage):
        state = PersistentState("milk-farmers", [], storage)
        state.hydrate()
        state.set_value(["new"])

        reloaded = PersistentState("milk-farmers", [], storage)
        assert reloaded.hydrate() == ["new"]

    def test_read_happens_before_first_write(self, storage):
        """An update before hydration builds on the stored value, not the default."""
        storage.save("milk-farmers", ["stored"])
        state = PersistentState("milk-farmers", ["default"], storage)

        state.update(lambda prev: ["new"] + prev)

        assert state.value == ["new", "stored"]
        assert storage.load("milk-farmers", [])[0] == ["new", "stored"]

    def test_reset_restores_default_and_clears_slot(self, storage):
        state = PersistentState("milk-farmers", ["default"], storage)
        state.hydrate()
        state.set_value(["new"])

        assert state.reset() == ["default"]
        assert storage.get_item("milk-farmers") is None

    def test_reset_returns_fresh_list(self, storage):
        default = ["default"]
        state = PersistentState("milk-farmers", default, storage)
        state.reset().append("mutated")

        assert default == ["default"]

    def test_write_failure_keeps_in_memory_value(self, storage, monkeypatch):
        def fail(key, value):
            raise sqlite3.OperationalError("database or disk is full")

        state = PersistentState("milk-farmers", [], storage)
        state.hydrate()
        monkeypatch.setattr(storage, "set_item", fail)

        assert state.set_value(["kept"]) == ["kept"]
        assert state.value == ["kept"]

    def test_without_storage(self):
        state = PersistentState("milk-farmers", ["default"])

        assert state.hydrated is True
        assert state.set_value(["new"]) == ["new"]
        assert state.reset() == ["default"]

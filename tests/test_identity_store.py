"""Tests for IdentityStore and the key-value stores behind it."""

import re
from pathlib import Path

from page_telemetry.adapters.storage import InMemoryKeyValueStore, JsonFileKeyValueStore
from page_telemetry.application import IdentityStore
from page_telemetry.application.identity_store import DEVICE_ID_KEY, generate_device_id

DEVICE_ID_PATTERN = re.compile(r"^device_\d+_[a-z0-9]{9}$")


def test_generated_device_id_has_expected_shape() -> None:
    """Given a fresh id, when inspecting it, then it is device_<ms>_<9 base36 chars>."""
    assert DEVICE_ID_PATTERN.match(generate_device_id())


def test_device_id_is_stable_across_calls() -> None:
    """Given a store, when asking twice, then the same id is returned."""
    identity = IdentityStore(InMemoryKeyValueStore())

    assert identity.get_device_id() == identity.get_device_id()


def test_existing_device_id_is_reused() -> None:
    """Given a stored id, when resolving, then the stored value is returned unchanged."""
    identity = IdentityStore(InMemoryKeyValueStore({DEVICE_ID_KEY: "device_1_abcdefghi"}))

    assert identity.get_device_id() == "device_1_abcdefghi"


def test_cleared_storage_yields_new_device_id() -> None:
    """Given a cleared store, when resolving again, then a different id is created."""
    store = InMemoryKeyValueStore()
    identity = IdentityStore(store)
    first = identity.get_device_id()

    store.clear()

    second = identity.get_device_id()
    assert second != first
    assert DEVICE_ID_PATTERN.match(second)


def test_user_name_round_trip() -> None:
    """Given no name, when one is set, then it is returned and reported as present."""
    identity = IdentityStore(InMemoryKeyValueStore())
    assert identity.get_user_name() is None
    assert identity.has_user_name() is False

    identity.set_user_name("Asha")

    assert identity.get_user_name() == "Asha"
    assert identity.has_user_name() is True


def test_json_file_store_persists_between_instances(tmp_path: Path) -> None:
    """Given an id written by one process, when a new store opens the file, then it sees the same id."""
    path = tmp_path / "nested" / "identity.json"
    first = IdentityStore(JsonFileKeyValueStore(path))
    device_id = first.get_device_id()
    first.set_user_name("Asha")

    second = IdentityStore(JsonFileKeyValueStore(path))

    assert path.exists()
    assert second.get_device_id() == device_id
    assert second.get_user_name() == "Asha"


def test_json_file_store_tolerates_corrupt_file(tmp_path: Path) -> None:
    """Given a corrupt file, when reading, then it behaves as empty and can be rewritten."""
    path = tmp_path / "identity.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileKeyValueStore(path)

    assert store.get("anything") is None

    store.set("key", "value")
    assert JsonFileKeyValueStore(path).get("key") == "value"


def test_json_file_store_delete_and_clear(tmp_path: Path) -> None:
    """Given stored keys, when deleting one and clearing, then values disappear and the file is removed."""
    path = tmp_path / "identity.json"
    store = JsonFileKeyValueStore(path)
    store.set("a", "1")
    store.set("b", "2")

    store.delete("a")
    assert store.get("a") is None
    assert store.get("b") == "2"

    store.clear()
    assert not path.exists()
    assert store.get("b") is None

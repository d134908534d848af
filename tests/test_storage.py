"""Tests for storage — scoped facade, file store merge, degraded failures."""

import json

from iaptic.auth.token_store import AccessTokenStore
from iaptic.errors import StorageError
from iaptic.storage import JsonFileStore, MemoryStore, Storage, open_store


class BrokenStore:
    """Every operation fails like a full or unavailable backing store."""

    def get_item(self, key):
        raise StorageError("unavailable")

    def set_item(self, key, value):
        raise StorageError("quota exceeded")

    def remove_item(self, key):
        raise OSError("read-only filesystem")


def test_keys_are_prefixed():
    store = MemoryStore()
    Storage(store).set_string("access_token", "abc")
    assert store.get_item("iaptic_access_token") == "abc"


def test_json_round_trip():
    storage = Storage(MemoryStore())
    storage.set_json("test-key", {"test": "value"})
    assert storage.get_json("test-key") == {"test": "value"}


def test_unreadable_json_is_absent():
    store = MemoryStore()
    store.set_item("iaptic_products", "{broken")
    assert Storage(store).get_json("products") is None


def test_failures_degrade_instead_of_raising():
    storage = Storage(BrokenStore())
    assert storage.get_string("access_token") is None
    assert storage.get_json("products") is None
    assert storage.set_string("access_token", "x") is False
    assert storage.set_json("products", {"products": []}) is False
    assert storage.remove("access_token") is False


def test_unserializable_value_is_rejected():
    storage = Storage(MemoryStore())
    assert storage.set_json("products", {"bad": object()}) is False


def test_file_store_keeps_unrelated_keys(tmp_path):
    """Writes merge into the existing JSON object on disk."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"server_url": "https://example.com"}), encoding="utf-8")

    store = JsonFileStore(path)
    store.set_item("iaptic_access_token", "tok")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"server_url": "https://example.com", "iaptic_access_token": "tok"}

    store.remove_item("iaptic_access_token")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"server_url": "https://example.com"}


def test_file_store_missing_file(tmp_path):
    store = JsonFileStore(tmp_path / "nested" / "store.json")
    assert store.get_item("anything") is None
    store.set_item("k", "v")
    assert JsonFileStore(tmp_path / "nested" / "store.json").get_item("k") == "v"


def test_corrupt_file_reads_as_absent(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{oops", encoding="utf-8")
    assert Storage(JsonFileStore(path)).get_string("access_token") is None


def test_invalid_utf8_file_reads_as_absent(tmp_path):
    """Undecodable bytes degrade like corrupt JSON instead of raising."""
    path = tmp_path / "store.json"
    path.write_bytes(b'{"iaptic_access_token": "\xff\xfe"}')
    storage = Storage(JsonFileStore(path))
    assert storage.get_string("access_token") is None
    assert storage.get_json("products") is None


def test_write_replaces_corrupt_file(tmp_path):
    """A rotated token is still persisted when the file was unreadable."""
    path = tmp_path / "store.json"
    path.write_bytes(b"\xff\xfe garbage")
    storage = Storage(JsonFileStore(path))

    assert storage.remove("products") is True
    assert storage.set_string("access_token", "rotated") is True
    assert storage.get_string("access_token") == "rotated"
    assert json.loads(path.read_text(encoding="utf-8")) == {"iaptic_access_token": "rotated"}


def test_facade_catches_value_errors_from_custom_stores():
    class DecodingStore:
        def get_item(self, key):
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        def set_item(self, key, value):
            raise ValueError("bad value")

        def remove_item(self, key):
            raise ValueError("bad key")

    storage = Storage(DecodingStore())
    assert storage.get_string("access_token") is None
    assert storage.set_string("access_token", "x") is False
    assert storage.remove("access_token") is False


def test_open_store():
    assert isinstance(open_store(None), MemoryStore)
    assert isinstance(open_store("/tmp/iaptic.json"), JsonFileStore)


def test_token_store_last_write_wins():
    tokens = AccessTokenStore(Storage(MemoryStore()))
    assert tokens.access_token is None
    assert not tokens.is_authenticated

    tokens.save("first")
    tokens.rotate("second")
    assert tokens.access_token == "second"

    assert tokens.rotate(None) is False
    assert tokens.access_token == "second"

    tokens.clear()
    assert tokens.access_token is None


def test_token_store_write_failure_reports_false():
    tokens = AccessTokenStore(Storage(MemoryStore(fail_writes=True)))
    assert tokens.save("tok") is False
    assert tokens.access_token is None


def test_token_clear_logs_only_on_success(caplog):
    caplog.set_level("INFO", logger="iaptic.auth.token_store")

    tokens = AccessTokenStore(Storage(BrokenStore()))
    assert tokens.clear() is False
    assert "Access token cleared" not in caplog.text

    tokens = AccessTokenStore(Storage(MemoryStore()))
    assert tokens.clear() is True
    assert "Access token cleared" in caplog.text

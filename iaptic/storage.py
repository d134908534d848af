"""Scoped key-value persistence: raw stores plus a facade that never raises."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from .errors import StorageError

log = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store. ``fail_writes`` simulates a full quota."""

    def __init__(self, fail_writes: bool = False):
        self._data: dict[str, str] = {}
        self.fail_writes = fail_writes

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError(f"Quota exceeded writing {key!r}")
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore:
    """All keys live in one JSON object on disk; every write is read-merge-write."""

    def __init__(self, path: str | os.PathLike):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError as e:  # bad JSON or bad UTF-8
            raise StorageError(f"Corrupt store file {self._path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _read_for_update(self) -> dict:
        """Current contents, or an empty object when the file is unreadable."""
        try:
            return self._read()
        except StorageError:
            log.warning("Overwriting corrupt store file %s", self._path)
            return {}

    def _write(self, data: dict):
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)

    def get_item(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read_for_update()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read_for_update()
        if key in data:
            del data[key]
            self._write(data)


class Storage:
    """Prefix-scoped access to a KeyValueStore.

    Failures are logged and degraded: reads return ``None``,
    writes and removals return ``False``.
    """

    def __init__(self, store: KeyValueStore, prefix: str = "iaptic_"):
        self._store = store
        self._prefix = prefix

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def get_string(self, name: str) -> str | None:
        try:
            return self._store.get_item(self.key(name))
        except (StorageError, OSError, ValueError):
            log.exception("Error reading %s from storage", name)
            return None

    def set_string(self, name: str, value: str) -> bool:
        try:
            self._store.set_item(self.key(name), value)
            return True
        except (StorageError, OSError, ValueError):
            log.exception("Error writing %s to storage", name)
            return False

    def get_json(self, name: str) -> Any:
        raw = self.get_string(name)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.error("Discarding unreadable JSON under %s", name)
            return None

    def set_json(self, name: str, value: Any) -> bool:
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            log.exception("Value for %s is not JSON-serializable", name)
            return False
        return self.set_string(name, raw)

    def remove(self, name: str) -> bool:
        try:
            self._store.remove_item(self.key(name))
            return True
        except (StorageError, OSError, ValueError):
            log.exception("Error removing %s from storage", name)
            return False


def open_store(path: str | os.PathLike | None) -> KeyValueStore:
    if path is None:
        return MemoryStore()
    return JsonFileStore(path)

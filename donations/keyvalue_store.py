"""
Key-Value Store

Typed key-value storage backing the donation settings. Values are strings,
blobs, longs or booleans. Multi-key changes go through a WriteBatch that is
committed as one unit.

Two implementations:
- InMemoryKeyValueStore: process-local, used by tests and ephemeral sessions
- JsonFileKeyValueStore: persists every committed write to a JSON document
"""

import base64
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from donations.models import KeyValueStoreError

logger = logging.getLogger(__name__)


Value = Union[str, bytes, int, bool]

_TYPE_NAMES = {str: "string", bytes: "blob", int: "long", bool: "boolean"}

# Signed 64-bit range for long values
_LONG_MIN = -(2 ** 63)
_LONG_MAX = 2 ** 63 - 1


def _check_value(value: Value) -> Value:
    if type(value) not in _TYPE_NAMES:
        raise TypeError(f"Unsupported value type: {type(value).__name__}")
    if type(value) is int and not _LONG_MIN <= value <= _LONG_MAX:
        raise ValueError(f"Long value out of range: {value}")
    return value


class WriteBatch:
    """
    Collects changes and commits them to the store as one unit.

    Builder methods return the batch so calls can be chained:

        store.begin_write().put_blob(a, b"...").put_string(c, "USD").apply()
    """

    def __init__(self, store: "KeyValueStore"):
        self._store = store
        self._changes: List[Tuple[str, Optional[Value]]] = []
        self._applied = False

    def put_string(self, key: str, value: str) -> "WriteBatch":
        return self._put(key, value, str)

    def put_blob(self, key: str, value: bytes) -> "WriteBatch":
        return self._put(key, bytes(value), bytes)

    def put_long(self, key: str, value: int) -> "WriteBatch":
        return self._put(key, value, int)

    def put_boolean(self, key: str, value: bool) -> "WriteBatch":
        return self._put(key, value, bool)

    def remove(self, key: str) -> "WriteBatch":
        self._changes.append((key, None))
        return self

    def _put(self, key: str, value: Value, expected: type) -> "WriteBatch":
        if type(value) is not expected:
            raise TypeError(
                f"Expected {_TYPE_NAMES[expected]} for {key}, got {type(value).__name__}"
            )
        self._changes.append((key, _check_value(value)))
        return self

    def __len__(self) -> int:
        return len(self._changes)

    def apply(self) -> None:
        """Commit all collected changes atomically"""
        if self._applied:
            raise RuntimeError("WriteBatch has already been applied")
        self._applied = True
        self._store._commit(self._changes)


class KeyValueStore(ABC):
    """
    Abstract typed key-value store.

    Subclasses provide _read, _commit and keys. Individual operations
    are thread-safe; locked() lets callers group a read and a write.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock across a read-modify-write sequence"""
        with self._lock:
            yield

    @abstractmethod
    def _read(self, key: str) -> Optional[Value]:
        """Return the raw stored value or None"""
        pass

    @abstractmethod
    def _commit(self, changes: List[Tuple[str, Optional[Value]]]) -> None:
        """Apply (key, value) changes in order; a None value removes the key"""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys"""
        pass

    def _get(self, key: str, default: Any, expected: type) -> Any:
        value = self._read(key)
        if value is None:
            return default
        if type(value) is not expected:
            raise TypeError(
                f"{key} holds a {_TYPE_NAMES[type(value)]}, not a {_TYPE_NAMES[expected]}"
            )
        return value

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._get(key, default, str)

    def get_blob(self, key: str, default: Optional[bytes] = None) -> Optional[bytes]:
        return self._get(key, default, bytes)

    def get_long(self, key: str, default: int = 0) -> int:
        return self._get(key, default, int)

    def get_boolean(self, key: str, default: bool = False) -> bool:
        return self._get(key, default, bool)

    def get_raw(self, key: str) -> Optional[Value]:
        """Stored value of any type, or None"""
        return self._read(key)

    def contains_key(self, key: str) -> bool:
        return self._read(key) is not None

    def put_string(self, key: str, value: str) -> None:
        self.begin_write().put_string(key, value).apply()

    def put_blob(self, key: str, value: bytes) -> None:
        self.begin_write().put_blob(key, value).apply()

    def put_long(self, key: str, value: int) -> None:
        self.begin_write().put_long(key, value).apply()

    def put_boolean(self, key: str, value: bool) -> None:
        self.begin_write().put_boolean(key, value).apply()

    def remove(self, key: str) -> None:
        self.begin_write().remove(key).apply()

    def begin_write(self) -> WriteBatch:
        return WriteBatch(self)


class InMemoryKeyValueStore(KeyValueStore):
    """Key-value store held in a dict"""

    def __init__(self, initial: Optional[Dict[str, Value]] = None):
        super().__init__()
        self._data: Dict[str, Value] = {}
        for key, value in (initial or {}).items():
            self._data[key] = _check_value(value)

    def _read(self, key: str) -> Optional[Value]:
        with self._lock:
            return self._data.get(key)

    def _commit(self, changes: List[Tuple[str, Optional[Value]]]) -> None:
        with self._lock:
            self._apply_changes(changes)

    def _apply_changes(self, changes: List[Tuple[str, Optional[Value]]]) -> None:
        for key, value in changes:
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())


class JsonFileKeyValueStore(InMemoryKeyValueStore):
    """
    Key-value store persisted to a JSON document.

    Document format, one entry per key:
        {"donation.currency.code": {"type": "string", "value": "EUR"}}

    Blobs are base64-encoded. Every committed batch rewrites the document
    through a temporary file and os.replace, so a crash never leaves a
    partially written file behind.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self._path = Path(path)
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        """Load stored values from disk"""
        if not self._path.exists():
            logger.debug(f"No key-value document at {self._path}, starting empty")
            return

        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(document, dict):
                raise ValueError("document root is not an object")
            for key, entry in document.items():
                self._data[key] = _decode_entry(entry)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load key-value document {self._path}: {e}")
            raise KeyValueStoreError(f"Corrupt key-value document {self._path}: {e}") from e

        logger.debug(f"Loaded {len(self._data)} keys from {self._path}")

    def _commit(self, changes: List[Tuple[str, Optional[Value]]]) -> None:
        with self._lock:
            previous = dict(self._data)
            self._apply_changes(changes)
            try:
                self._save()
            except Exception:
                # Keep memory consistent with what is on disk
                self._data = previous
                raise

    def _save(self) -> None:
        """Save all values to disk"""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        document = {key: _encode_entry(value) for key, value in self._data.items()}

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except Exception:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


def _encode_entry(value: Value) -> Dict[str, Any]:
    type_name = _TYPE_NAMES[type(value)]
    if type_name == "blob":
        return {"type": type_name, "value": base64.b64encode(value).decode("ascii")}
    return {"type": type_name, "value": value}


def _decode_entry(entry: Dict[str, Any]) -> Value:
    type_name = entry["type"]
    raw = entry["value"]

    if type_name == "string" and isinstance(raw, str):
        return raw
    if type_name == "blob" and isinstance(raw, str):
        return base64.b64decode(raw.encode("ascii"), validate=True)
    if type_name == "long" and type(raw) is int:
        return _check_value(raw)
    if type_name == "boolean" and isinstance(raw, bool):
        return raw
    raise ValueError(f"invalid {type_name!r} entry: {raw!r}")

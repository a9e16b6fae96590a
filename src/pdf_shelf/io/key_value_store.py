"""Key-value store abstraction - durable backing for library and session state."""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Union

StoredValue = Union[str, int, bool, List[str]]


class KeyValueStore(ABC):
    """
    Abstract interface for the persistent key-value store.

    Reads return None when a key is absent (or the store is unusable) rather
    than raising. Writes return True on success and never raise; callers
    treat durability as best-effort.
    """

    @abstractmethod
    def get_string(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def save_string(self, key: str, value: str) -> bool:
        pass

    @abstractmethod
    def get_int(self, key: str) -> Optional[int]:
        pass

    @abstractmethod
    def save_int(self, key: str, value: int) -> bool:
        pass

    @abstractmethod
    def get_bool(self, key: str) -> Optional[bool]:
        pass

    @abstractmethod
    def save_bool(self, key: str, value: bool) -> bool:
        pass

    @abstractmethod
    def get_string_list(self, key: str) -> Optional[List[str]]:
        pass

    @abstractmethod
    def save_string_list(self, key: str, value: List[str]) -> bool:
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Delete a single key. Removing an absent key succeeds."""
        pass

    @abstractmethod
    def clear(self) -> bool:
        """Delete every key."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """
    Simple in-memory store.

    Used for testing and for sessions that should leave nothing on disk.
    Values are type-checked on read so a key written as one type does not
    come back as another.
    """

    def __init__(self):
        self._data: Dict[str, StoredValue] = {}
        self._lock = threading.Lock()

    def _get(self, key: str, kind: type) -> Optional[StoredValue]:
        with self._lock:
            value = self._data.get(key)
        if value is None:
            return None
        # bool is an int subclass; keep the two apart.
        if kind is int and isinstance(value, bool):
            return None
        if not isinstance(value, kind):
            return None
        return list(value) if kind is list else value

    def _put(self, key: str, value: StoredValue) -> bool:
        with self._lock:
            self._data[key] = value
        return True

    def get_string(self, key: str) -> Optional[str]:
        return self._get(key, str)

    def save_string(self, key: str, value: str) -> bool:
        return self._put(key, str(value))

    def get_int(self, key: str) -> Optional[int]:
        return self._get(key, int)

    def save_int(self, key: str, value: int) -> bool:
        return self._put(key, int(value))

    def get_bool(self, key: str) -> Optional[bool]:
        return self._get(key, bool)

    def save_bool(self, key: str, value: bool) -> bool:
        return self._put(key, bool(value))

    def get_string_list(self, key: str) -> Optional[List[str]]:
        return self._get(key, list)

    def save_string_list(self, key: str, value: List[str]) -> bool:
        return self._put(key, [str(item) for item in value])

    def remove(self, key: str) -> bool:
        with self._lock:
            self._data.pop(key, None)
        return True

    def clear(self) -> bool:
        with self._lock:
            self._data.clear()
        return True

    def keys(self) -> List[str]:
        """List stored keys (diagnostics and tests)."""
        with self._lock:
            return list(self._data)

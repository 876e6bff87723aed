"""
Thread-safe key/value store backing configuration sources.
"""

import threading
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple


class KeyValueStore:
    """
    In-memory mapping from string keys to string values.

    Writers build a new dict and swap the published snapshot under a lock;
    readers take the current snapshot reference without locking and therefore
    never observe a half-applied update.
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._write_lock = threading.Lock()
        self._snapshot: Mapping[str, str] = MappingProxyType({})
        if initial:
            self.replace_all(initial)

    @staticmethod
    def _check_entry(key: str, value: str) -> Tuple[str, str]:
        if not isinstance(key, str) or not key:
            raise ValueError("Configuration keys must be non-empty strings")
        if not isinstance(value, str):
            raise TypeError(f"Value for '{key}' must be a string, got {type(value).__name__}")
        return key, value

    def get(self, key: str) -> Optional[str]:
        return self._snapshot.get(key)

    def contains(self, key: str) -> bool:
        return key in self._snapshot

    def snapshot(self) -> Mapping[str, str]:
        """Return the current immutable view of all properties."""
        return self._snapshot

    def put(self, key: str, value: str) -> Optional[str]:
        """Set one property, returning the previous value."""
        key, value = self._check_entry(key, value)
        with self._write_lock:
            current = self._snapshot
            updated = dict(current)
            updated[key] = value
            self._snapshot = MappingProxyType(updated)
            return current.get(key)

    def put_all(self, properties: Mapping[str, str]) -> None:
        checked = dict(self._check_entry(k, v) for k, v in properties.items())
        with self._write_lock:
            updated = dict(self._snapshot)
            updated.update(checked)
            self._snapshot = MappingProxyType(updated)

    def remove(self, key: str) -> Optional[str]:
        with self._write_lock:
            current = self._snapshot
            if key not in current:
                return None
            updated = dict(current)
            old_value = updated.pop(key)
            self._snapshot = MappingProxyType(updated)
            return old_value

    def replace_all(self, properties: Mapping[str, str]) -> Mapping[str, str]:
        """Atomically replace every property, returning the previous snapshot."""
        checked: Dict[str, str] = dict(self._check_entry(k, v) for k, v in properties.items())
        with self._write_lock:
            previous = self._snapshot
            self._snapshot = MappingProxyType(checked)
            return previous

    def clear(self) -> None:
        with self._write_lock:
            self._snapshot = MappingProxyType({})

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self) -> Iterator[str]:
        return iter(self._snapshot)

    def __contains__(self, key: object) -> bool:
        return key in self._snapshot

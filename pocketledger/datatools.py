"""Small collection helpers and a thread-safe map."""

from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def to_map(items: Iterable[V], get_key: Callable[[V], K]) -> Dict[K, V]:
    """Index ``items`` by ``get_key``; later items win on duplicate keys."""
    return {get_key(item): item for item in items}


def extract_values(items: Iterable[V], get_value: Callable[[V], K]) -> List[K]:
    """Return ``get_value`` applied to each item, in order."""
    return [get_value(item) for item in items]


def copy_reverse(items: Iterable[V]) -> List[V]:
    """Return a reversed copy of ``items``, leaving the input untouched."""
    return list(items)[::-1]


class ConcurrentMap(Generic[K, V]):
    """A dictionary guarded by a lock for use from several threads."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: Dict[K, V] = {}

    def load(self, key: K) -> V:
        """Return the value for ``key``; raise KeyError when absent."""
        with self._lock:
            return self._data[key]

    def store(self, key: K, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def load_or_store(self, key: K, value: V) -> Tuple[V, bool]:
        """Return ``(existing, True)`` or store ``value`` and return ``(value, False)``."""
        with self._lock:
            if key in self._data:
                return self._data[key], True
            self._data[key] = value
            return value, False

    def compare_and_swap(self, key: K, old: V, new: V) -> bool:
        """Replace the value for ``key`` with ``new`` only if it equals ``old``."""
        with self._lock:
            if key in self._data and self._data[key] == old:
                self._data[key] = new
                return True
            return False

    def compare_and_delete(self, key: K, old: V) -> bool:
        """Remove ``key`` only if its value equals ``old``."""
        with self._lock:
            if key in self._data and self._data[key] == old:
                del self._data[key]
                return True
            return False

    def delete(self, key: K) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._data.pop(key, None)

    def each(self, func: Callable[[K, V], bool]) -> None:
        """Call ``func(key, value)`` for each entry until it returns a false value."""
        with self._lock:
            snapshot = list(self._data.items())
        for key, value in snapshot:
            if not func(key, value):
                break

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
"""Key/value caches backed by process memory or by Redis."""

from __future__ import annotations

import abc
import logging
import re
import threading
import time
from datetime import timedelta
from typing import Any, Callable, Optional, Union

import redis

_log = logging.getLogger(__name__)

Duration = Optional[Union[timedelta, int, float]]

_INT_MAX = 2**63 - 1
_INT_MIN = -(2**63)
_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


class CacheError(Exception):
    """Raised when a cache operation cannot be carried out."""


def _seconds(duration: Duration) -> float:
    if duration is None:
        return 0.0
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


def _parse_int_text(text: str, kind: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise ValueError(f"unable to convert {kind} to int: {text}")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"unable to convert {kind} to int: {text}")
    return value


def convert_to_int(value: Any) -> int:
    """Convert a cached value to int; raise ValueError or TypeError if impossible."""
    if isinstance(value, bool):
        raise TypeError(f"unsupported type: {type(value).__name__}")
    if isinstance(value, int):
        if value > _INT_MAX:
            raise ValueError(f"integer value exceeds the range of int: {value}")
        return value
    if isinstance(value, float):
        try:
            return int(value)
        except (OverflowError, ValueError) as exc:
            raise ValueError(f"unable to convert float to int: {value}") from exc
    if isinstance(value, str):
        return _parse_int_text(value, "string")
    if isinstance(value, (bytes, bytearray)):
        try:
            text = bytes(value).decode("ascii")
        except UnicodeDecodeError as exc:
            raise ValueError(f"unable to convert bytes to int: {value!r}") from exc
        return _parse_int_text(text, "bytes")
    raise TypeError(f"unsupported type: {type(value).__name__}")


class Cache(abc.ABC):
    """Common interface of the caches."""

    def get_key(self, tab: Any, unique: str) -> str:
        """Build a cache key from a table tag and a unique part."""
        return f"{getattr(tab, 'value', tab)}_{unique}"

    @abc.abstractmethod
    def init(self) -> None:
        """Prepare the cache for use."""

    @abc.abstractmethod
    def get(self, key: str) -> Any:
        """Return the value for ``key`` or None when absent."""

    @abc.abstractmethod
    def get_int(self, key: str) -> Optional[int]:
        """Return the value for ``key`` as int, or None when absent or not numeric."""

    @abc.abstractmethod
    def set(self, key: str, value: Any, duration: Duration) -> None:
        """Store ``value`` under ``key`` for ``duration``."""

    @abc.abstractmethod
    def increment(self, key: str, number: int) -> None:
        """Add ``number`` to the integer stored under ``key``."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the cache."""


class LocalCache(Cache):
    """An in-process cache with per-entry expiry.

    A duration of None or zero uses the default expiration; a negative one
    means the entry never expires.
    """

    DEFAULT_EXPIRATION = timedelta(hours=2)
    CLEANUP_INTERVAL = timedelta(minutes=10)

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[str, tuple[Any, Optional[float]]] = {}
        self._next_cleanup = 0.0
        self.init()

    def init(self) -> None:
        with self._lock:
            self._items = {}
            self._next_cleanup = self._clock() + self.CLEANUP_INTERVAL.total_seconds()

    def _deadline(self, duration: Duration) -> Optional[float]:
        seconds = _seconds(duration)
        if seconds == 0:
            seconds = self.DEFAULT_EXPIRATION.total_seconds()
        if seconds < 0:
            return None
        return self._clock() + seconds

    def _expired(self, deadline: Optional[float], now: float) -> bool:
        return deadline is not None and now >= deadline

    def _purge_if_due(self, now: float) -> None:
        if now < self._next_cleanup:
            return
        self._items = {
            key: entry for key, entry in self._items.items() if not self._expired(entry[1], now)
        }
        self._next_cleanup = now + self.CLEANUP_INTERVAL.total_seconds()

    def _lookup(self, key: str) -> tuple[bool, Any]:
        now = self._clock()
        self._purge_if_due(now)
        entry = self._items.get(key)
        if entry is None:
            return False, None
        if self._expired(entry[1], now):
            del self._items[key]
            return False, None
        return True, entry[0]

    def get(self, key: str) -> Any:
        with self._lock:
            found, value = self._lookup(key)
        if not found:
            _log.info("Key '%s' not found in local cache", key)
        return value

    def get_int(self, key: str) -> Optional[int]:
        value = self.get(key)
        if value is None:
            return None
        try:
            return convert_to_int(value)
        except (TypeError, ValueError):
            _log.warning("Error while converting value of '%s' into int", key)
            return None

    def set(self, key: str, value: Any, duration: Duration) -> None:
        deadline = self._deadline(duration)
        with self._lock:
            self._purge_if_due(self._clock())
            self._items[key] = (value, deadline)
        _log.info("Key '%s' set in local cache; Value: %r; Expiration: %s", key, value, duration)

    def increment(self, key: str, number: int) -> None:
        _log.warning("Increment is not supported for LocalCache")
        raise CacheError("Increment is not supported for LocalCache")

    def delete(self, key: str) -> None:
        with self._lock:
            found, _ = self._lookup(key)
            if found:
                del self._items[key]
        if not found:
            _log.warning(
                "Attempted to delete key '%s', but it was not found in the local cache", key
            )

    def close(self) -> None:
        with self._lock:
            self._items.clear()
        _log.info("Local cache flushed successfully")


class RedisCache(Cache):
    """A cache stored in a Redis server.

    A duration of None, zero or less stores the value without expiry.
    """

    def __init__(
        self,
        addr: str = "localhost:6379",
        password: Optional[str] = None,
        db: int = 0,
        client: Any = None,
    ) -> None:
        self.addr = addr
        self.password = password
        self.db = db
        self._client = client

    @property
    def _redis(self) -> Any:
        if self._client is None:
            raise CacheError("redis cache is not initialised")
        return self._client

    def init(self) -> None:
        if self._client is None:
            if ":" in self.addr:
                host, _, port_text = self.addr.rpartition(":")
                port = int(port_text)
            else:
                host, port = self.addr, 6379
            self._client = redis.Redis(
                host=host or "localhost",
                port=port,
                password=self.password,
                db=self.db,
                decode_responses=True,
            )
        self._client.ping()

    def get(self, key: str) -> Any:
        try:
            value = self._redis.get(key)
        except redis.RedisError as exc:
            _log.error("Error while getting key %s: %s", key, exc)
            return None
        if value is None:
            _log.info("Redis key %s doesn't exist", key)
        return value

    def get_int(self, key: str) -> Optional[int]:
        value = self.get(key)
        if value is None:
            return None
        try:
            return convert_to_int(value)
        except (TypeError, ValueError):
            _log.warning("Error while converting value of '%s' into int", key)
            return None

    def set(self, key: str, value: Any, duration: Duration) -> None:
        milliseconds = int(_seconds(duration) * 1000)
        try:
            self._redis.set(key, value, px=milliseconds if milliseconds > 0 else None)
        except redis.RedisError as exc:
            _log.error("Error while setting key %s: %s", key, exc)

    def increment(self, key: str, number: int) -> None:
        try:
            self._redis.incrby(key, number)
        except redis.RedisError as exc:
            _log.error("Error while incrementing key %s: %s", key, exc)
            raise

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except redis.RedisError as exc:
            _log.error("Error while deleting key %s: %s", key, exc)
            raise

    def close(self) -> None:
        self._redis.close()
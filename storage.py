"""Key/value storage with TTL, and the rendered-document cache built on it."""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any, ttl_seconds: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store. Expiry is checked lazily on read; optional LRU bound."""

    def __init__(self, max_entries: int = 0, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max(0, int(max_entries))
        self._clock = clock
        self._data: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return value

    def put(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            self._data[key] = (value, expires_at)
            self._data.move_to_end(key)
            if self.max_entries:
                while len(self._data) > self.max_entries:
                    self._data.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


def cache_key(**parts) -> str:
    """Every parameter that changes the rendered output must be passed here."""
    return "|".join(sorted(f"{k}={v}" for k, v in parts.items()))


class ResponseCache:
    def __init__(self, store: KeyValueStore, prefix: str = "doc:"):
        self.store = store
        self.prefix = prefix

    def get(self, key: str) -> bytes | None:
        return self.store.get(self.prefix + key)

    def put(self, key: str, document: bytes, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        self.store.put(self.prefix + key, document, ttl_seconds)

"""
h1b_dashboard/cache.py — In-memory TTL store for report rows.

Cache Configuration:
- One entry per report name; a new set() replaces the previous entry
- TTL measured from the last write; expiry is checked lazily on get()
- Uses monotonic() for TTL comparison (immune to system clock changes)
"""
import threading
from dataclasses import dataclass
from time import monotonic
from typing import Any, Callable


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class CacheStore:
    """Process-local key/value store; mutations are serialized by a lock."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def get(self, key: str) -> Any | None:
        """
        Retrieve a cached value if it exists and is within TTL.

        Returns:
            The stored value on hit, None on miss or expiry
        """
        entry = self._store.get(key)
        if entry is None or entry.is_expired(self.now()):
            return None
        return entry.value

    def entry(self, key: str) -> CacheEntry | None:
        """Raw entry, expired or not."""
        return self._store.get(key)

    def set(self, key: str, value: Any) -> None:
        """Store value with current timestamp, replacing any previous entry."""
        entry = CacheEntry(value=value, stored_at=self.now(), ttl=self.ttl_seconds)
        with self._lock:
            self._store[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        """Clear all cached reports."""
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

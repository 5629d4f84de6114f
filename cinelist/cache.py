import threading
import time
from collections.abc import Callable, Hashable
from typing import Any


class TTLStore:
    """Thread-safe in-process key/value store with per-entry expiry.

    Expired entries are evicted lazily when read; there is no sweeper.
    Concurrent writers for the same key simply overwrite each other.
    """

    def __init__(
        self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[Hashable, tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SlidingWindowLimiter:
    """Allow at most ``limit`` hits per key within ``window_seconds``."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[Hashable, list[float]] = {}

    def allow(self, key: Hashable) -> bool:
        now = self._clock()
        with self._lock:
            recent = [
                t for t in self._hits.get(key, []) if now - t <= self.window_seconds
            ]
            if len(recent) >= self.limit:
                self._hits[key] = recent
                return False
            recent.append(now)
            self._hits[key] = recent
            self._sweep(now)
            return True

    def _sweep(self, now: float) -> None:
        # Drop keys whose newest hit has left the window.
        stale = [
            key for key, hits in self._hits.items()
            if not hits or now - hits[-1] > self.window_seconds
        ]
        for key in stale:
            del self._hits[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

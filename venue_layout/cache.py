from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

from loguru import logger


DEFAULT_MAX_SIZE = 50
DEFAULT_TTL_S = 5 * 60
DEFAULT_SWEEP_INTERVAL_S = 3 * 60


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float


class MemoryCache:
    """
    Bounded in-memory TTL cache. When full, the oldest entry is evicted.
    Safe to share between threads; construct one per owner and pass it in.
    """

    def __init__(
        self,
        *,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[Hashable, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[key] = CacheEntry(value, now, now + (self.default_ttl if ttl is None else ttl))

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return default
            return entry.value

    def has(self, key: Hashable) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_matching(self, predicate: Callable[[Hashable], bool]) -> int:
        with self._lock:
            doomed = [k for k in self._entries if predicate(k)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.debug("cache: cleared {} expired entr{}", len(expired), "y" if len(expired) == 1 else "ies")
        return len(expired)

    def stats(self) -> dict:
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            expired = sum(1 for e in self._entries.values() if now > e.expires_at)
        return {
            "totalEntries": total,
            "validEntries": total - expired,
            "expiredEntries": expired,
            "maxSize": self.max_size,
            "utilization": round(total / self.max_size * 100, 1),
        }


class CacheSweeper:
    """Runs cache.clear_expired() every interval seconds on a daemon thread until stopped."""

    def __init__(self, cache: MemoryCache, *, interval: float = DEFAULT_SWEEP_INTERVAL_S):
        self.cache = cache
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "CacheSweeper":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="cache-sweeper", daemon=True)
        self._thread.start()
        return self

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.cache.clear_expired()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self) -> "CacheSweeper":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()

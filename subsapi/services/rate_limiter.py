"""
Fixed-window rate limiter

The counter for a key resets entirely once more than `window_seconds` have
passed since its window opened, so a burst straddling a window boundary can
reach twice the configured rate.

The default store lives in process memory: a restart resets every limit and
separate instances do not share counts. Pass a store backed by a shared
key-value service to limit across instances.
"""

import threading
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from subsapi.utils.errors import RateLimitError

WindowEntry = Tuple[int, float]  # (count, window_start)


class CounterStore(Protocol):
    def get(self, key: str) -> Optional[WindowEntry]: ...

    def set(self, key: str, entry: WindowEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def prune(self, opened_before: float) -> int: ...


class InMemoryCounterStore:
    """Process-wide dict store. Suitable for single-instance deployments."""

    def __init__(self) -> None:
        self._entries: Dict[str, WindowEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[WindowEntry]:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: WindowEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def prune(self, opened_before: float) -> int:
        """Drop every entry whose window opened before the given time"""
        with self._lock:
            stale = [key for key, (_, start) in self._entries.items() if start < opened_before]
            for key in stale:
                del self._entries[key]
            return len(stale)


class FixedWindowRateLimiter:
    """Allow max_requests per key per window.

    Expired windows are swept from the store at most once per window, so keys
    that are never seen again do not accumulate.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        store: Optional[CounterStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.store = store if store is not None else InMemoryCounterStore()
        self.clock = clock
        self._last_sweep = clock()

    def hit(self, key: str, message: str = "Too many requests. Please wait and try again.") -> int:
        """Count one request against key; raise RateLimitError when the window is full.

        Returns the number of requests counted in the current window.
        """
        now = self.clock()
        if now - self._last_sweep > self.window_seconds:
            self.store.prune(now - self.window_seconds)
            self._last_sweep = now
        entry = self.store.get(key)

        if entry is None or now - entry[1] > self.window_seconds:
            self.store.set(key, (1, now))
            return 1

        count, window_start = entry
        if count >= self.max_requests:
            retry_after = max(1, int(self.window_seconds - (now - window_start)) + 1)
            raise RateLimitError(message, retry_after=retry_after)

        self.store.set(key, (count + 1, window_start))
        return count + 1

    def reset(self, key: str) -> None:
        self.store.delete(key)

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class TtlCache:
    """
    Process-wide key/value cache with a fixed time window.

    Entries are written with a simple assignment (last write wins). This is only
    safe because everything runs on one event loop.
    """

    def __init__(self, ttl: timedelta, *, clock: Callable[[], float] = time.monotonic, name: str = "cache"):
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._entries: dict[Any, tuple[float, Any]] = {}

    def _fresh(self, stored_at: float) -> bool:
        return (self._clock() - stored_at) < self.ttl.total_seconds()

    def get(self, key, default=None):
        entry = self._entries.get(key)
        if entry is None or not self._fresh(entry[0]):
            return default
        return entry[1]

    def get_stale(self, key, default=None):
        """Returns the last stored value even if it has expired."""
        entry = self._entries.get(key)
        return default if entry is None else entry[1]

    def set(self, key, value) -> None:
        self._entries[key] = (self._clock(), value)

    async def get_or_compute(self, key, compute: Callable[[], Awaitable[Any]]):
        entry = self._entries.get(key)
        if entry is not None and self._fresh(entry[0]):
            return entry[1]
        value = await compute()
        self.set(key, value)
        return value

    def invalidate(self, key=None) -> None:
        if key is None:
            self._entries.clear()
            logger.info("%s: cache cleared", self.name)
        else:
            self._entries.pop(key, None)

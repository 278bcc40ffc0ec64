"""
In-process TTL caches for lookup tables that rarely change.

Postal boundaries change only when the geometry migration runs, and the
rep / manager pick lists change when an admin edits a profile. Both are
read on nearly every territory screen, so they are held per worker process.

Usage:
    rows = geometry_cache.get_or_load("geometries:us:centroids", load_rows)
    geometry_cache.invalidate("geometries:ca")
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class TTLCache:
    """Keyed values that expire ``ttl`` seconds after they were loaded."""

    def __init__(self, name: str, ttl: float) -> None:
        self.name = name
        self._ttl = ttl
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get_or_load(self, key: str, loader: Callable[[], T]) -> T:
        """
        Cached value for ``key``, calling ``loader`` on a miss or after expiry.

        The loader runs outside the lock; two concurrent misses may both load,
        and the later result wins.
        """
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > now:
                return entry[1]

        value = loader()
        with self._lock:
            self._entries[key] = (time.monotonic() + self._ttl, value)
        logger.debug("cache_filled", cache=self.name, key=key)
        return value

    def invalidate(self, prefix: str = "") -> int:
        """Drop every key starting with ``prefix``; returns how many were dropped."""
        with self._lock:
            stale = [k for k in self._entries if k.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self.invalidate()


geometry_cache = TTLCache("geometries", ttl=24 * 60 * 60)
profile_cache = TTLCache("profiles", ttl=5 * 60)

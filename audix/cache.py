"""
TTL Cache

Thread-safe in-memory cache with per-entry expiry and an injectable clock.
Used for verified auth tokens on the server and for activity payloads in the
listening client.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A single cache entry with TTL tracking."""

    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """
    In-memory cache with TTL support.

    Features:
    - Default TTL with per-set override
    - Injected clock so expiry can be driven by tests
    - Size bound with oldest-first eviction
    - Hit/miss tracking for monitoring
    """

    DEFAULT_TTL = 300  # 5 minutes

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_size: int = 1000,
        clock: Clock = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def _evict_if_needed(self) -> None:
        """Evict oldest entries if cache is too large."""
        if len(self._cache) < self._max_size:
            return

        now = self._clock()
        for key in [k for k, v in self._cache.items() if v.is_expired(now)]:
            del self._cache[key]
        if len(self._cache) < self._max_size:
            return

        # Remove oldest 10% of entries
        entries_to_remove = max(1, self._max_size // 10)
        sorted_entries = sorted(self._cache.items(), key=lambda x: x[1].created_at)
        for key, _ in sorted_entries[:entries_to_remove]:
            del self._cache[key]

        logger.debug(f"Evicted {entries_to_remove} cache entries due to size limit")

    def get(self, key: str) -> tuple[bool, Any]:
        """
        Get a value from cache.

        Returns:
            Tuple of (hit: bool, value: Any)
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return False, None

            if entry.is_expired(self._clock()):
                del self._cache[key]
                self._misses += 1
                return False, None

            self._hits += 1
            return True, entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        with self._lock:
            if key not in self._cache:
                self._evict_if_needed()
            now = self._clock()
            self._cache[key] = CacheEntry(
                value=value,
                created_at=now,
                expires_at=now + (ttl if ttl is not None else self._ttl),
            )

    def age(self, key: str) -> float | None:
        """Seconds since the entry was stored, or None if absent."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            return self._clock() - entry.created_at

    def invalidate(self, key: str) -> bool:
        """
        Delete a specific key from cache.

        Returns:
            True if key was found and deleted
        """
        with self._lock:
            return self._cache.pop(key, None) is not None

    def invalidate_all(self) -> int:
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            hit_ratio = self._hits / total if total > 0 else 0
            return {
                "size": len(self._cache),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_ratio": round(hit_ratio, 4),
                "total_requests": total,
            }

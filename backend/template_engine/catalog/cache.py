"""
PURPOSE: Process-owned TTL cache for indicator catalog reads.

One IndicatorCache instance is created per process (see catalog.repository)
and shared by every request. Entries expire after ttl_seconds; any catalog
write calls invalidate() so readers never see a definition staler than the
TTL, and never see a stale definition after a write in the same process.

CALLED BY: catalog/repository.py (SqlIndicatorCatalog)
"""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from template_engine.utils.logger import get_logger

logger = get_logger("catalog.cache")


class IndicatorCache:
    """
    PURPOSE: Keyed cache with a fixed staleness bound and explicit invalidation.

    Attributes:
        ttl_seconds: Maximum age of a cached entry.
    """

    def __init__(
        self,
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value for key, or None when absent or expired.

        Args:
            key: Cache key

        Returns:
            The cached value, or None.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def put(self, key: str, value: Any) -> None:
        """Store value under key for ttl_seconds."""
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def invalidate(self, key: Optional[str] = None) -> None:
        """
        Drop one entry, or every entry when key is None.

        CALLED BY: SqlIndicatorCatalog.upsert / delete
        """
        with self._lock:
            if key is None:
                dropped = len(self._entries)
                self._entries.clear()
            else:
                dropped = 1 if self._entries.pop(key, None) is not None else 0
        logger.info("indicator_cache_invalidated", key=key or "*", dropped=dropped)

    def get_stats(self) -> Dict[str, Any]:
        """Return hit/miss counters and current size."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.ttl_seconds,
            }

#!/usr/bin/env python3
"""
Analysis Result Cache

TTL + LRU store for AnalysisResult objects keyed by request fingerprint.
Results are copied on the way in and out so callers never share a
reference with the cache.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

from ..models.analysis import AnalysisResult
from ..resilience.capabilities import Clearable, HealthStatusReporter

logger = logging.getLogger(__name__)

ESTIMATED_ENTRY_BYTES = 1024


@dataclass
class CacheEntry:
    """A single cache entry with metadata."""
    key: str
    payload: AnalysisResult
    created_at: float
    last_accessed: float
    access_count: int = 1

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Check if this entry has outlived the TTL."""
        return now - self.created_at > ttl_seconds

    def access(self, now: float) -> AnalysisResult:
        """Mark entry as accessed and return a copy of the payload."""
        self.access_count += 1
        self.last_accessed = now
        return copy.deepcopy(self.payload)

    def age_seconds(self, now: float) -> float:
        return now - self.created_at


class ResultCache(Clearable, HealthStatusReporter):
    """
    Thread-safe analysis result cache with TTL expiry and LRU eviction.

    Features:
    - TTL expiration, removed lazily on read or by clean_expired()
    - Exact LRU eviction back to capacity on every set()
    - Hit/miss reporting to an optional performance monitor
    - Health classification from the hit rate
    """

    def __init__(self,
                 max_entries: int = 1000,
                 ttl_seconds: float = 300,  # 5 minutes
                 performance_monitor=None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize result cache.

        Args:
            max_entries: Maximum number of entries before LRU eviction
            ttl_seconds: Entry lifetime in seconds
            performance_monitor: Optional monitor notified of hits and misses
            clock: Source of the current time in epoch seconds
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.performance_monitor = performance_monitor
        self._clock = clock

        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._access_time_total = 0.0
        self._access_count = 0
        self._stats = {
            'hits': 0,
            'misses': 0,
            'sets': 0,
            'evictions': 0
        }

        logger.debug(f"Initialized result cache with TTL={ttl_seconds}s, max_entries={max_entries}")

    def get(self, key: str) -> Optional[AnalysisResult]:
        """
        Get a cached result.

        Args:
            key: Cache key

        Returns:
            Copy of the cached result, or None if missing or expired
        """
        started = time.perf_counter()
        with self._lock:
            now = self._clock()
            entry = self._cache.get(key)

            if entry is not None and entry.is_expired(now, self.ttl_seconds):
                del self._cache[key]
                logger.debug(f"Cache key expired: {key}")
                entry = None

            if entry is None:
                self._stats['misses'] += 1
                result = None
            else:
                self._stats['hits'] += 1
                result = entry.access(now)

            self._access_time_total += (time.perf_counter() - started) * 1000
            self._access_count += 1

        if self.performance_monitor is not None:
            if result is None:
                self.performance_monitor.record_cache_miss()
            else:
                self.performance_monitor.record_cache_hit()

        return result

    def set(self, key: str, result: AnalysisResult) -> None:
        """
        Store a result, evicting least recently accessed entries over capacity.

        Args:
            key: Cache key
            result: Result to cache
        """
        with self._lock:
            now = self._clock()
            self._cache[key] = CacheEntry(
                key=key,
                payload=copy.deepcopy(result),
                created_at=now,
                last_accessed=now
            )
            self._stats['sets'] += 1

            if len(self._cache) > self.max_entries:
                self._evict_lru()

            logger.debug(f"Cached key: {key} (size: {len(self._cache)})")

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                logger.debug(f"Deleted cache key: {key}")
                return True
            return False

    def has(self, key: str) -> bool:
        """Check if key exists and is not expired (does not count as access)."""
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and not entry.is_expired(self._clock(), self.ttl_seconds)

    def clear(self) -> None:
        """Clear all entries from cache."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            logger.debug(f"Cleared {count} cache entries")

    def _evict_lru(self) -> None:
        # sorted() is stable, so equal timestamps evict in insertion order
        entries_by_access = sorted(self._cache.values(), key=lambda e: e.last_accessed)
        evict_count = len(self._cache) - self.max_entries

        for entry in entries_by_access[:evict_count]:
            del self._cache[entry.key]
            self._stats['evictions'] += 1

        logger.debug(f"Evicted {evict_count} LRU entries")

    def clean_expired(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, entry in self._cache.items()
                if entry.is_expired(now, self.ttl_seconds)
            ]

            for key in expired_keys:
                del self._cache[key]

            if expired_keys:
                logger.debug(f"Cleaned up {len(expired_keys)} expired entries")

            return len(expired_keys)

    def reset_stats(self) -> None:
        with self._lock:
            for name in self._stats:
                self._stats[name] = 0
            self._access_time_total = 0.0
            self._access_count = 0

    @property
    def size(self) -> int:
        return len(self._cache)

    def hit_rate(self) -> float:
        """Hit rate as a fraction in [0, 1]."""
        total_requests = self._stats['hits'] + self._stats['misses']
        return self._stats['hits'] / total_requests if total_requests > 0 else 0.0

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                'size': len(self._cache),
                'hit_count': self._stats['hits'],
                'miss_count': self._stats['misses'],
                'hit_rate': self.hit_rate(),
                'eviction_count': self._stats['evictions'],
                'set_count': self._stats['sets'],
                'average_access_time_ms': (
                    self._access_time_total / self._access_count if self._access_count else 0.0
                ),
                'memory_usage_bytes': len(self._cache) * ESTIMATED_ENTRY_BYTES,
                'max_entries': self.max_entries,
                'ttl_seconds': self.ttl_seconds
            }

    def get_health_status(self) -> Dict[str, Any]:
        """
        Classify cache health from the hit rate.

        A cache that has not served any lookups yet is reported healthy.
        """
        with self._lock:
            lookups = self._stats['hits'] + self._stats['misses']
            hit_rate = self.hit_rate()

            if lookups == 0 or hit_rate >= 0.8:
                status = 'healthy'
            elif hit_rate >= 0.5:
                status = 'degraded'
            else:
                status = 'unhealthy'

            return {
                'status': status,
                'details': {
                    'hit_rate': hit_rate,
                    'lookups': lookups,
                    'size': len(self._cache),
                    'max_entries': self.max_entries
                }
            }

    def get_keys(self) -> Set[str]:
        with self._lock:
            return set(self._cache.keys())

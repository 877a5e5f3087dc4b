# Path: core/features/cache.py
# Purpose: Memoize photo feature extraction by content fingerprint.
# Layer: core/features.
# Details: Bounded FIFO map guarded by a lock; computation runs outside the lock and the first stored value wins.
#          Location-keyed fallbacks are never stored.

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from config.log import get_logger
from core.errors import CacheError
from core.models.domain import PhotoFeatureSet, PhotoInput

from .extractor import FeatureExtractor

logger = get_logger("cache")

V = TypeVar("V")


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time counters for a cache."""

    size: int
    capacity: int
    hits: int
    misses: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class FeatureCache(Generic[V]):
    """Thread-safe bounded map evicting the oldest-inserted key first."""

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1.")
        self.capacity = capacity
        self._entries: "OrderedDict[str, V]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[V]:
        """Return the cached value without counting a lookup."""

        with self._lock:
            return self._entries.get(key)

    def keys(self) -> List[str]:
        """Return keys from oldest to newest insertion."""

        with self._lock:
            return list(self._entries.keys())

    def put(self, key: str, value: V) -> V:
        """Store a value unless the key is present; return the value now cached."""

        # None marks a miss, so storing it would lose the write silently.
        if value is None:
            raise CacheError(f"Refusing to cache None for {key}.")

        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing
            self._entries[key] = value
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted %s from feature cache", evicted)
            return value

    def get_or_compute(self, key: str, compute: Callable[[], V], keep: Optional[Callable[[V], bool]] = None) -> V:
        """Return the cached value for ``key``, computing and storing it on a miss.

        When ``keep`` is given and returns False for the computed value, the value
        is returned without being stored.
        """

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1

        value = compute()
        if keep is not None and not keep(value):
            return value
        return self.put(key, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                capacity=self.capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )


class CachedFeatureExtractor:
    """Feature extractor front that consults a FeatureCache before computing."""

    def __init__(self, extractor: FeatureExtractor, cache: Optional[FeatureCache[PhotoFeatureSet]] = None) -> None:
        self.extractor = extractor
        self.cache: FeatureCache[PhotoFeatureSet] = cache if cache is not None else FeatureCache()

    def analyze(self, photo: PhotoInput) -> PhotoFeatureSet:
        """Return cached features, computing them on a miss.

        Fallbacks for photos known only by URL or path are returned uncached.
        """

        key = self.extractor.fingerprint(photo)
        return self.cache.get_or_compute(
            key,
            lambda: self.extractor.analyze(photo),
            keep=lambda features: photo.data is not None or not features.is_fallback,
        )

    def analyze_pool(self, photos: List[PhotoInput]) -> Dict[str, PhotoFeatureSet]:
        """Analyze every photo and return features keyed by photo id, in pool order."""

        return {photo.id: self.analyze(photo) for photo in photos}

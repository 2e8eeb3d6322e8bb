"""Capacity-bounded in-memory cache with per-entry TTL."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    stored_at: float


class TTLCache(Generic[K, V]):
    """Maps keys to values that expire *ttl_seconds* after being stored.

    When a store pushes the size past *capacity*, the oldest
    *evict_fraction* of entries is dropped (at least one).

    Example:
        >>> cache = TTLCache[str, int](capacity=2, ttl_seconds=60)
        >>> cache.set("a", 1)
        >>> cache.get("a")
        1
    """

    def __init__(
        self,
        capacity: int = 500,
        ttl_seconds: float = 24 * 60 * 60,
        evict_fraction: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.evict_fraction = evict_fraction
        self._clock = clock
        self._entries: dict[K, _Entry[V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def get(self, key: K) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: K, value: V) -> None:
        self._entries[key] = _Entry(value=value, stored_at=self._clock())
        if len(self._entries) > self.capacity:
            self._evict_oldest()

    def get_or_create(self, key: K, factory: Callable[[], V]) -> V:
        """Return the cached value for *key*, building and storing it on a miss."""
        value = self.get(key)
        if value is None:
            value = factory()
            self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def _evict_oldest(self) -> None:
        count = max(1, int(len(self._entries) * self.evict_fraction))
        oldest = sorted(self._entries.items(), key=lambda kv: kv[1].stored_at)[:count]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug("Evicted %d cache entries", count)

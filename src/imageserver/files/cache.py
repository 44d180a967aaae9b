"""
=============================================================================
IN-MEMORY CONTENT CACHE
=============================================================================

Keeps the bytes of small images in memory so repeat requests skip the disk.

=============================================================================
HOW ENTRIES ARE KEYED AND BOUNDED
=============================================================================

    key   = "file:{absolute path}:{mtime in ns}"
    cost  = len(bytes)
    ttl   = 30 minutes, counted from insertion (absolute expiration)

    ┌─────────────────────────────────────────────────────────────────────┐
    │  OrderedDict, least recently used first                             │
    │                                                                      │
    │  [a.png 40K] [b.jpg 2M] [c.gif 9K] ... [z.webp 1M]  ← most recent   │
    │   ▲                                                                  │
    │   └── evicted first when a new entry does not fit in size_limit     │
    └─────────────────────────────────────────────────────────────────────┘

Because the modification time is part of the key, editing a file makes
its old entry unreachable. Nothing has to invalidate it: it ages out or
gets pushed out by newer entries.

Files above the cacheable threshold (5 MiB) are never offered to the
store; CachePolicy makes that call, the store only enforces its total
size limit.

=============================================================================
THREAD SAFETY
=============================================================================

Every worker thread shares one store, so all state changes happen under a
single lock. Two workers missing on the same key at the same time may both
read the file and both insert it; the second insert replaces the first,
and since both hold the same bytes that is harmless.

=============================================================================
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from .validators import ResolvedFile


logger = logging.getLogger(__name__)


class ContentCache(ABC):
    """
    Interface the delivery component uses to cache file contents.

    The store is handed to ContentDelivery at construction, so tests can
    swap in their own implementation.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return cached bytes, or None on a miss or expired entry."""

    @abstractmethod
    def put(self, key: str, value: bytes, ttl: float) -> bool:
        """Store bytes for `ttl` seconds. Returns False if not stored."""


@dataclass
class CacheEntry:
    value: bytes
    size: int
    expires_at: float


class MemoryContentCache(ContentCache):
    """
    Size-bounded LRU cache with per-entry expiration.

    Args:
        size_limit: Maximum total bytes held across all entries.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        size_limit: int = 200 * 1024 * 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.size_limit = size_limit
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._size = 0
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._entries.get(key)

            if entry is None:
                self.misses += 1
                return None

            if entry.expires_at <= self._clock():
                self._remove(key)
                self.misses += 1
                logger.debug(f"[ContentCache] Expired: {key}")
                return None

            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def put(self, key: str, value: bytes, ttl: float) -> bool:
        size = len(value)

        if size > self.size_limit:
            logger.debug(f"[ContentCache] Entry larger than cache ({size} bytes): {key}")
            return False

        with self._lock:
            if key in self._entries:
                self._remove(key)

            self._make_room(size)

            self._entries[key] = CacheEntry(
                value=value,
                size=size,
                expires_at=self._clock() + ttl,
            )
            self._size += size

        logger.debug(f"[ContentCache] Stored {size} bytes: {key}")
        return True

    def _make_room(self, needed: int) -> None:
        """Drop expired entries, then LRU entries, until `needed` bytes fit."""
        if self._size + needed <= self.size_limit:
            return

        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
            self._remove(key)

        while self._entries and self._size + needed > self.size_limit:
            key, _ = next(iter(self._entries.items()))
            self._remove(key)
            self.evictions += 1
            logger.debug(f"[ContentCache] Evicted: {key}")

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._size -= entry.size

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._size = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.expires_at > self._clock()

    @property
    def size(self) -> int:
        """Bytes currently held."""
        with self._lock:
            return self._size

    def stats(self) -> dict:
        with self._lock:
            return {
                "entries": len(self._entries),
                "size_bytes": self._size,
                "size_limit": self.size_limit,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }


@dataclass(frozen=True)
class CachePolicy:
    """Which files get cached, under what key, and for how long."""

    max_entry_size: int = 5 * 1024 * 1024
    ttl: float = 30 * 60.0

    def is_cacheable(self, resolved: ResolvedFile) -> bool:
        return resolved.size <= self.max_entry_size

    @staticmethod
    def key_for(resolved: ResolvedFile) -> str:
        return f"file:{resolved.path}:{resolved.mtime_ns}"

"""
Time- and Size-Bounded In-Memory Cache.

``CacheStore`` maps a ``CacheKey`` to a ``CacheEntry`` holding the cached
value, its write time and a read counter.

Contract
--------
- ``get`` returns a value only while ``now - written_at <= ttl``.  Expired
  entries behave as misses but are **not** removed on read; removal
  happens in ``evict_expired`` or through capacity eviction.
- ``set`` on a new key when the store is full evicts the single entry
  with the oldest ``written_at`` (oldest-write-first, not LRU).
- The store is not safe for concurrent mutation from several threads; it
  is only ever touched from the event loop thread of the coordinator that
  owns its record kind.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Generic, Optional, TypeVar

from finsync.logger import StructuredLogger
from finsync.models.sync_models import CacheEntry, CacheKey, CacheStats
from finsync.utils.dates import utc_now

T = TypeVar("T")

DEFAULT_TTL: timedelta = timedelta(hours=1)
DEFAULT_MAX_ENTRIES: int = 1000


class CacheStore(Generic[T]):
    """Generic cache for one record kind, shared by every owner.

    Parameters
    ----------
    name:
        Label used in log lines (usually the record kind).
    logger:
        Structured JSON logger.
    ttl:
        Maximum age of a fresh entry.
    max_entries:
        Capacity; the store never holds more entries than this.
    clock:
        Zero-argument callable returning the current aware datetime.
        Injected so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        name: str,
        logger: StructuredLogger,
        ttl: timedelta = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._name = name
        self._logger = logger
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry[T]] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: CacheKey) -> Optional[T]:
        """Return the fresh value for *key*, or ``None`` on miss/expiry."""
        entry = self._entries.get(key)
        if entry is None:
            self._logger.debug("Cache miss: %s", key)
            return None
        if self._is_expired(entry, self._clock()):
            self._logger.debug("Cache entry expired: %s", key)
            return None
        entry.hit_count += 1
        self._logger.debug("Cache hit: %s (hits=%d)", key, entry.hit_count)
        return entry.value

    def peek(self, key: CacheKey) -> Optional[T]:
        """Return the value for *key* regardless of age, without counting a hit.

        Only for serving stale data when the remote store is unreachable.
        """
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, key: CacheKey, value: T) -> None:
        """Store *value* under *key*, resetting its write time.

        When inserting a new key into a full store, the entry with the
        oldest ``written_at`` is evicted first.
        """
        if key not in self._entries and len(self._entries) >= self._max_entries:
            self._evict_oldest()
        self._entries[key] = CacheEntry(value=value, written_at=self._clock())

    def remove(self, key: CacheKey) -> bool:
        """Drop *key*; returns ``True`` if it was present."""
        return self._entries.pop(key, None) is not None

    def remove_where(self, predicate: Callable[[CacheKey], bool]) -> int:
        """Drop every entry whose key satisfies *predicate*; returns the count."""
        doomed = [k for k in self._entries if predicate(k)]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def evict_expired(self) -> int:
        """Remove every entry older than the TTL; returns the count removed."""
        now = self._clock()
        removed = self.remove_where(lambda k: self._is_expired(self._entries[k], now))
        if removed:
            self._logger.debug("Evicted %d expired %s cache entries.", removed, self._name)
        return removed

    def clear(self) -> None:
        """Remove all entries (sign-out / global data reset)."""
        count = len(self._entries)
        self._entries.clear()
        self._logger.info("Cleared %s cache (%d entries).", self._name, count)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def stats(self) -> CacheStats:
        size = len(self._entries)
        hit = sum(1 for e in self._entries.values() if e.hit_count > 0)
        return CacheStats(
            size=size,
            capacity=self._max_entries,
            hit_rate=hit / size if size else 0.0,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _is_expired(self, entry: CacheEntry[T], now: datetime) -> bool:
        return now - entry.written_at > self._ttl

    def _evict_oldest(self) -> None:
        oldest = min(self._entries, key=lambda k: self._entries[k].written_at)
        del self._entries[oldest]
        self._logger.debug("Capacity eviction in %s cache: %s", self._name, oldest)

"""
Pagination Index.

Slices an owner's deduplicated, most-recent-first collection into
fixed-size pages and caches each page under
``CacheKey(kind, owner_id, page_index)``.  Cached pages for an owner are
dropped every time that owner's coordinator publishes a new ``Data``
state, so a page is never served from an older collection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, Optional

from finsync.logger import StructuredLogger
from finsync.models.enums import RecordKind
from finsync.models.record import RecordT
from finsync.models.sync_models import CacheKey, Data, Page, SyncState
from finsync.services.cache_store import CacheStore
from finsync.services.query_engine import dedupe_and_sort

if TYPE_CHECKING:
    from finsync.services.sync_coordinator import RecordSyncCoordinator

DEFAULT_PAGE_SIZE: int = 50


class PaginationIndex(Generic[RecordT]):
    """Page cache for one record kind across all owners.

    Coordinators register themselves with ``attach``; the index then reads
    the coordinator's last-known-good collection when a page is missing
    and invalidates on every ``Data`` publish.

    Only pages of the configured ``page_size`` are cached.  A call with a
    different size is computed directly.
    """

    def __init__(
        self,
        kind: RecordKind,
        cache: CacheStore[Page[RecordT]],
        logger: StructuredLogger,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._kind = kind
        self._cache = cache
        self._logger = logger
        self._page_size = page_size
        self._sources: dict[str, Callable[[], list[RecordT]]] = {}

    @property
    def page_size(self) -> int:
        return self._page_size

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def attach(self, coordinator: RecordSyncCoordinator[RecordT]) -> Callable[[], None]:
        """Serve pages for *coordinator*'s owner and track its publishes.

        Returns a callable that detaches the coordinator again.
        """
        owner_id = coordinator.owner_id
        if owner_id is None:
            return lambda: None

        self._sources[owner_id] = lambda: coordinator.last_known_good
        self.invalidate(owner_id)

        def _on_state(state: SyncState[RecordT]) -> None:
            if isinstance(state, Data):
                self.invalidate(owner_id)

        unsubscribe = coordinator.subscribe(_on_state)

        def _detach() -> None:
            unsubscribe()
            self._sources.pop(owner_id, None)
            self.invalidate(owner_id)

        return _detach

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def page(
        self,
        owner_id: str,
        page_number: int,
        page_size: Optional[int] = None,
    ) -> Page[RecordT]:
        """Return items ``[n*size, n*size + size)`` of the owner's collection.

        A page starting at or beyond the end of the collection is empty.
        An owner with no attached coordinator has an empty collection.
        """
        if page_number < 0:
            raise ValueError(f"page_number must be >= 0, got {page_number}")
        size = self._page_size if page_size is None else page_size
        if size < 1:
            raise ValueError(f"page_size must be >= 1, got {size}")

        cacheable = size == self._page_size
        key = CacheKey(kind=self._kind, owner_id=owner_id, page_index=page_number)
        if cacheable:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        source = self._sources.get(owner_id)
        collection = dedupe_and_sort(source()) if source is not None else []
        start = page_number * size
        page: Page[RecordT] = Page(items=collection[start:start + size], page_index=page_number)

        if cacheable:
            self._cache.set(key, page)
        return page

    def page_count(self, owner_id: str) -> int:
        source = self._sources.get(owner_id)
        if source is None:
            return 0
        total = len(source())
        return (total + self._page_size - 1) // self._page_size

    def invalidate(self, owner_id: str) -> int:
        """Drop every cached page for *owner_id*; returns the count removed."""
        removed = self._cache.remove_where(
            lambda k: k.owner_id == owner_id and k.kind == self._kind and k.page_index is not None
        )
        if removed:
            self._logger.debug(
                "Invalidated %d cached %s pages for owner %s.",
                removed, self._kind.value, owner_id,
            )
        return removed

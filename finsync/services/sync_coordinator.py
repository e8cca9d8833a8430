"""
Record Sync Coordinator.

Owns the live ``SyncState`` for one (record kind, owner) pair and is the
single source of truth observed by pagination and derived views.

Load protocol
-------------
1. No owner: publish ``Data([])``.
2. Fresh cache entry: publish ``Data(cached)`` and revalidate against the
   remote store in a background task (stale-while-revalidate).
3. Remote fetch: on success dedupe/sort, write the cache and the local
   snapshot, publish ``Data``.  On failure fall back to the cached value
   (fresh or stale) and then to the local snapshot; publish ``Error`` only
   when neither exists.

Mutation protocol (write-through)
---------------------------------
The remote call runs first.  Only its authoritative result is spliced into
the last-known-good collection, re-sorted, written to the cache and the
snapshot, and published.  A failed mutation publishes ``Error`` and
re-raises; the previous collection stays available as ``last_known_good``.

Concurrency
-----------
An ``asyncio.Lock`` per coordinator serialises loads, revalidations and
mutations, so every operation applies its state transition before the
next one starts.  Different kinds and owners never share a lock.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, Callable, ClassVar, Generic, Optional

from finsync.exceptions import SyncError
from finsync.logger import StructuredLogger
from finsync.models.enums import RecordKind
from finsync.models.record import RecordT
from finsync.models.sync_models import CacheKey, Data, Error, Loading, Page, SyncState
from finsync.repositories.protocols import LocalDurableStore, RemotePersistence
from finsync.services.base_service import BaseService
from finsync.services.cache_store import CacheStore
from finsync.services.pagination import PaginationIndex
from finsync.services.query_engine import dedupe_and_sort
from finsync.services.state_holder import StateHolder, Unsubscribe

Splice = Callable[[list[RecordT]], list[RecordT]]


class RecordSyncCoordinator(BaseService, Generic[RecordT]):
    """Loading state machine plus write-through mutations for one kind.

    Parameters
    ----------
    owner_id:
        Owner whose collection this coordinator holds; ``None`` when no
        session is active.
    remote:
        Authoritative ``RemotePersistence`` for this kind.
    local:
        Best-effort ``LocalDurableStore`` for this kind.
    cache:
        The kind's ``CacheStore``, shared with coordinators of other owners.
    logger:
        Structured JSON logger.
    pagination:
        Optional ``PaginationIndex``; when given, the coordinator attaches
        itself so pages are invalidated on each ``Data`` publish.
    load_on_init:
        Schedule the initial load when constructed inside a running event
        loop.  Outside a loop, call ``refresh()`` explicitly.
    """

    KIND: ClassVar[RecordKind]

    def __init__(
        self,
        owner_id: Optional[str],
        remote: RemotePersistence[RecordT],
        local: LocalDurableStore[RecordT],
        cache: CacheStore[list[RecordT]],
        logger: StructuredLogger,
        pagination: Optional[PaginationIndex[RecordT]] = None,
        load_on_init: bool = True,
    ) -> None:
        super().__init__(logger, kind=self.KIND.value, owner_id=owner_id)
        self._owner_id: Optional[str] = owner_id
        self._remote = remote
        self._local = local
        self._cache = cache
        self._pagination = pagination
        self._lock: asyncio.Lock = asyncio.Lock()
        self._state: StateHolder[SyncState[RecordT]] = StateHolder(
            Loading(), self._logger, name=f"{self.KIND.value} coordinator",
        )
        self._last_known_good: list[RecordT] = []
        self._background: set[asyncio.Task[Any]] = set()
        self._closed: bool = False
        self._detach_pagination: Optional[Unsubscribe] = (
            pagination.attach(self) if pagination is not None else None
        )

        if load_on_init:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                self._logger.debug(
                    "No running event loop; initial %s load deferred to refresh().",
                    self.KIND.value,
                )
            else:
                self._spawn(self.refresh(), "initial load")

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def state(self) -> SyncState[RecordT]:
        return self._state.value

    @property
    def last_known_good(self) -> list[RecordT]:
        """Records of the most recently published ``Data`` state."""
        return list(self._last_known_good)

    @property
    def records(self) -> list[RecordT]:
        """Current records when the state is ``Data``, otherwise empty."""
        state = self._state.value
        return list(state.records) if isinstance(state, Data) else []

    def subscribe(self, observer: Callable[[SyncState[RecordT]], None]) -> Unsubscribe:
        return self._state.subscribe(observer)

    def page(self, page_number: int, page_size: Optional[int] = None) -> Page[RecordT]:
        """Return one page of the last-known-good collection."""
        if self._pagination is None:
            raise RuntimeError(f"{self.KIND.value} coordinator has no pagination index")
        if self._owner_id is None:
            return Page(items=[], page_index=page_number)
        return self._pagination.page(self._owner_id, page_number, page_size)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def refresh(self) -> SyncState[RecordT]:
        """Run the load protocol from the cache check and return the new state."""
        async with self._lock:
            self._publish(Loading())

            if self._owner_id is None:
                self._publish(Data(records=[]))
                return self.state

            cached = self._cache.get(self._key)
            if cached is not None:
                self._publish(Data(records=list(cached)))
                self._spawn(self._revalidate(), "revalidation")
                return self.state

            await self._fetch_remote()
            return self.state

    async def _revalidate(self) -> None:
        async with self._lock:
            if self._closed:
                return
            await self._fetch_remote()

    async def _fetch_remote(self) -> None:
        """Fetch the authoritative collection; caller holds the lock."""
        assert self._owner_id is not None
        try:
            fetched = await self._remote.fetch_all(self._owner_id)
        except SyncError as exc:
            await self._degrade(exc)
            return

        records = dedupe_and_sort(fetched)
        self._cache.set(self._key, records)
        self._cache.evict_expired()
        await self._local.write_snapshot(self._owner_id, records)
        self._logger.debug(
            "Loaded %d %s records from remote.", len(records), self.KIND.value,
        )
        self._publish(Data(records=records))

    async def _degrade(self, exc: SyncError) -> None:
        assert self._owner_id is not None
        fallback: Optional[list[RecordT]] = self._cache.peek(self._key)
        source = "cache"
        if fallback is None:
            snapshot = await self._local.read_snapshot(self._owner_id)
            if snapshot:
                fallback = dedupe_and_sort(snapshot)
                source = "local snapshot"

        if fallback is None:
            self._logger.error(
                "Loading %s failed with no fallback: %s",
                self.KIND.value, exc,
                extra={"event": "sync_load_failed"},
            )
            self._publish(Error(cause=exc))
            return

        self._logger.warning(
            "Remote %s load failed (%s); serving %d records from %s.",
            self.KIND.value, exc, len(fallback), source,
            extra={"event": "sync_degraded"},
        )
        self._publish(Data(records=list(fallback)))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, record: RecordT) -> RecordT:
        """Create *record* remotely, then insert the stored version at the front."""
        async with self._lock:
            created = await self._call_remote("add", self._remote.create(record))
            await self._write_through(lambda current: [created, *current])
            self._logger.info("Added %s record %s.", self.KIND.value, created.id)
            return created

    async def update(self, record: RecordT) -> RecordT:
        """Persist *record* remotely, then replace the record with the same id."""
        async with self._lock:
            return await self._update_locked(record)

    async def delete(self, record_id: str) -> None:
        """Delete *record_id* remotely, then remove it from the collection."""
        async with self._lock:
            await self._call_remote("delete", self._remote.delete(record_id))
            await self._write_through(
                lambda current: [r for r in current if r.id != record_id]
            )
            self._logger.info("Deleted %s record %s.", self.KIND.value, record_id)

    async def _update_locked(self, record: RecordT) -> RecordT:
        updated = await self._call_remote("update", self._remote.update(record))

        def _replace(current: list[RecordT]) -> list[RecordT]:
            if any(r.id == updated.id for r in current):
                return [updated if r.id == updated.id else r for r in current]
            return [updated, *current]

        await self._write_through(_replace)
        self._logger.info("Updated %s record %s.", self.KIND.value, updated.id)
        return updated

    async def _call_remote(self, operation: str, call: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await call
        except SyncError as exc:
            self._fail(operation, exc)
            raise

    def _fail(self, operation: str, exc: SyncError) -> None:
        """Log a failed mutation and publish ``Error``; the caller re-raises."""
        self._logger.error(
            "%s %s failed: %s", operation.capitalize(), self.KIND.value, exc,
            extra={"event": "sync_mutation_failed"},
        )
        self._publish(Error(cause=exc))

    async def _write_through(self, splice: Splice[RecordT]) -> None:
        records = dedupe_and_sort(splice(list(self._last_known_good)))
        if self._owner_id is not None:
            self._cache.set(self._key, records)
            await self._local.write_snapshot(self._owner_id, records)
        self._publish(Data(records=records))

    # ------------------------------------------------------------------
    # Background work and lifecycle
    # ------------------------------------------------------------------

    async def wait_for_background(self) -> None:
        """Await every background load/revalidation scheduled so far."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        """Drain background work and detach from the pagination index.

        Idempotent.  Revalidations that have not started yet are skipped.
        """
        if self._closed:
            return
        self._closed = True
        await self.wait_for_background()
        if self._detach_pagination is not None:
            self._detach_pagination()
            self._detach_pagination = None
        self._logger.debug("%s coordinator closed.", self.KIND.value)

    def _spawn(self, coro: Coroutine[Any, Any, Any], label: str) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(lambda t: self._on_background_done(t, label))

    def _on_background_done(self, task: asyncio.Task[Any], label: str) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "Background %s of %s failed.", label, self.KIND.value,
                exc_info=exc,
            )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @property
    def _key(self) -> CacheKey:
        assert self._owner_id is not None
        return CacheKey(kind=self.KIND, owner_id=self._owner_id)

    def _publish(self, state: SyncState[RecordT]) -> None:
        if isinstance(state, Data):
            self._last_known_good = list(state.records)
        self._logger.debug(
            "%s state -> %s", self.KIND.value, state.status,
        )
        self._state.publish(state)

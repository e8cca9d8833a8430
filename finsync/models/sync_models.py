"""
Cache and Synchronisation State Models.

Typed containers shared by the cache store, the pagination index and the
record coordinators:

- ``CacheKey``   — composite (kind, owner, optional page) key.
- ``CacheEntry`` — cached value plus write time and read counter.
- ``CacheStats`` — observability snapshot of one store.
- ``Page``       — one fixed-size slice of an owner's collection.
- ``Loading`` / ``Data`` / ``Error`` — the ``SyncState`` tagged union
  published by every coordinator.
- ``Ready`` — the computed value of a derived view (``ViewState``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from finsync.models.enums import RecordKind

T = TypeVar("T")

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "Data",
    "Error",
    "Loading",
    "Page",
    "Ready",
    "SyncState",
    "ViewState",
]


# ---------------------------------------------------------------------------
# Cache models
# ---------------------------------------------------------------------------

class CacheKey(BaseModel):
    """Composite cache key.

    Renders as ``"<kind>_<owner_id>"`` for collections and
    ``"<kind>_<owner_id>_<page_index>"`` for pages, which is also the
    string used in log lines.
    """

    model_config = ConfigDict(frozen=True)

    kind: RecordKind
    owner_id: str
    page_index: Optional[int] = Field(default=None, ge=0)

    def __str__(self) -> str:
        base = f"{self.kind.value}_{self.owner_id}"
        if self.page_index is None:
            return base
        return f"{base}_{self.page_index}"

    def for_page(self, page_index: int) -> CacheKey:
        return CacheKey(kind=self.kind, owner_id=self.owner_id, page_index=page_index)


class CacheEntry(BaseModel, Generic[T]):
    """A cached value with its write timestamp.

    ``hit_count`` is incremented on every fresh read.  It feeds
    ``CacheStats.hit_rate`` only; eviction order is by ``written_at``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: T
    written_at: datetime
    hit_count: int = 0


class CacheStats(BaseModel):
    """Point-in-time size report for a ``CacheStore``."""

    size: int
    capacity: int
    hit_rate: float = 0.0


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class Page(BaseModel, Generic[T]):
    """A derived slice of the deduplicated, sorted collection."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    items: list[T] = Field(default_factory=list)
    page_index: int = Field(ge=0)

    @property
    def is_empty(self) -> bool:
        return not self.items


# ---------------------------------------------------------------------------
# SyncState tagged union
# ---------------------------------------------------------------------------

class Loading(BaseModel):
    """Initial state, re-entered on every explicit refresh."""

    model_config = ConfigDict(frozen=True)

    status: Literal["loading"] = "loading"


class Data(BaseModel, Generic[T]):
    """A usable collection, fresh or degraded to a cached snapshot."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: Literal["data"] = "data"
    records: list[T] = Field(default_factory=list)


class Error(BaseModel):
    """The last operation failed; ``cause`` is the exception raised."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: Literal["error"] = "error"
    cause: BaseException


SyncState = Union[Loading, Data[T], Error]


class Ready(BaseModel, Generic[T]):
    """A derived view's computed value over Data inputs."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: Literal["ready"] = "ready"
    value: T


ViewState = Union[Loading, Ready[T], Error]

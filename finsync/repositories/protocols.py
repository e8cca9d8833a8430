"""
Collaborator Protocols.

Structural contracts for the two persistence collaborators every
``RecordSyncCoordinator`` consumes.  The Supabase and SQLite repositories
satisfy them; tests substitute in-memory fakes of the same shape.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from finsync.models.record import RecordT


@runtime_checkable
class RemotePersistence(Protocol[RecordT]):
    """Authoritative store.  Any call may raise a ``SyncError`` subclass."""

    async def fetch_all(self, owner_id: str) -> list[RecordT]:
        """Return every record owned by *owner_id*."""
        ...

    async def create(self, record: RecordT) -> RecordT:
        """Persist *record* and return the stored version."""
        ...

    async def update(self, record: RecordT) -> RecordT:
        """Replace the stored record with the same id and return it."""
        ...

    async def delete(self, record_id: str) -> None:
        """Remove the record with *record_id*."""
        ...


@runtime_checkable
class LocalDurableStore(Protocol[RecordT]):
    """Best-effort local snapshot store.  Never raises."""

    async def read_snapshot(self, owner_id: str) -> list[RecordT]:
        """Return the last written collection, or an empty list."""
        ...

    async def write_snapshot(self, owner_id: str, records: list[RecordT]) -> None:
        """Replace the stored collection for *owner_id*."""
        ...

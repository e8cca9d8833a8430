"""
Synchronisation Error Taxonomy.

Every failure that crosses the remote-persistence boundary is mapped to
one of the classes below before it reaches a coordinator, so callers can
branch on the type instead of parsing Supabase error strings.
"""

from __future__ import annotations

from typing import Optional

__all__ = ["NotFound", "RemoteRejected", "RemoteUnavailable", "SyncError"]


class SyncError(Exception):
    """Base class for remote persistence failures."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class RemoteUnavailable(SyncError):
    """Network or transport failure, or the client is running offline."""


class RemoteRejected(SyncError):
    """The remote store refused the request (validation or authorization)."""


class NotFound(SyncError):
    """A mutation targeted a record id absent from the authoritative store.

    Signals that the caller's view is stale; the usual response is
    ``refresh()``.
    """

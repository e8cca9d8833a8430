"""
Base Remote Repository.

Provides shared infrastructure for the per-kind Supabase repositories:
- DatabaseManager reference (async Supabase client)
- Logger reference
- Row <-> model conversion with key normalisation
- Classification of every client failure into the ``SyncError`` taxonomy
"""

from __future__ import annotations

from typing import ClassVar, Generic, Optional

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import AsyncClient

from finsync.database import DatabaseManager
from finsync.exceptions import NotFound, RemoteRejected, RemoteUnavailable, SyncError
from finsync.logger import StructuredLogger
from finsync.models.record import RecordT
from finsync.utils.string_helpers import JsonValue, normalize_keys

# PostgREST error codes with a meaning more specific than "rejected".
# PGRST000-PGRST003: PostgREST could not reach its database.
# PGRST116: a single-row request matched no rows.
_UNAVAILABLE_CODE_PREFIX: str = "PGRST00"
_NOT_FOUND_CODES: frozenset[str] = frozenset({"PGRST116"})


class RemoteRepository(Generic[RecordT]):
    """Supabase-backed implementation of ``RemotePersistence``.

    Subclasses set ``TABLE``, ``MODEL`` and ``ORDER_COLUMN``.  Every
    public method either returns validated models or raises a
    ``SyncError`` subclass; raw client exceptions never escape.
    """

    TABLE: ClassVar[str] = ""
    MODEL: ClassVar[type]
    OWNER_COLUMN: ClassVar[str] = "user_id"
    ORDER_COLUMN: ClassVar[str] = "created_at"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger.bind(table=self.TABLE)

    @property
    def supabase(self) -> AsyncClient:
        """Returns the Supabase client; raises ``RuntimeError`` offline."""
        return self._db.supabase

    # ------------------------------------------------------------------
    # RemotePersistence
    # ------------------------------------------------------------------

    async def fetch_all(self, owner_id: str) -> list[RecordT]:
        """Fetch every row owned by *owner_id*, newest first."""
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq(self.OWNER_COLUMN, owner_id)
                .order(self.ORDER_COLUMN, desc=True)
                .execute()
            )
        except Exception as exc:
            raise self._classify(exc, f"fetch_all ({self.TABLE})") from exc
        return self._parse_rows(response.data or [])

    async def create(self, record: RecordT) -> RecordT:
        """Insert *record*; returns the row as stored by the remote."""
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .insert(self._serialize(record))
                .execute()
            )
        except Exception as exc:
            raise self._classify(exc, f"create ({self.TABLE})") from exc

        created = self._parse_single(response.data, fallback=record)
        self._logger.info("Remote %s created: %s", self.TABLE, created.id)
        return created

    async def update(self, record: RecordT) -> RecordT:
        """Update the row with ``record.id``; ``NotFound`` if none matched."""
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .update(self._serialize(record))
                .eq("id", record.id)
                .execute()
            )
        except Exception as exc:
            raise self._classify(exc, f"update ({self.TABLE})") from exc

        if not response.data:
            raise NotFound(f"{self.TABLE} record '{record.id}' does not exist remotely.")
        updated = self._parse_single(response.data, fallback=record)
        self._logger.info("Remote %s updated: %s", self.TABLE, updated.id)
        return updated

    async def delete(self, record_id: str) -> None:
        """Delete the row with *record_id*; ``NotFound`` if none matched."""
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .delete()
                .eq("id", record_id)
                .execute()
            )
        except Exception as exc:
            raise self._classify(exc, f"delete ({self.TABLE})") from exc

        if not response.data:
            raise NotFound(f"{self.TABLE} record '{record_id}' does not exist remotely.")
        self._logger.info("Remote %s deleted: %s", self.TABLE, record_id)

    # ------------------------------------------------------------------
    # Conversion helpers
    # ------------------------------------------------------------------

    def _serialize(self, record: RecordT) -> dict[str, JsonValue]:
        return record.model_dump(mode="json", by_alias=True)

    def _parse_rows(self, rows: list[dict[str, JsonValue]]) -> list[RecordT]:
        """Validate *rows*; malformed rows are logged and skipped."""
        records: list[RecordT] = []
        for row in rows:
            try:
                records.append(self.MODEL.model_validate(normalize_keys(row)))
            except ValidationError as exc:
                self._logger.warning(
                    "Skipping malformed %s row %s: %s",
                    self.TABLE,
                    row.get("id", "?"),
                    exc.error_count(),
                    extra={"event": "REMOTE_ROW_INVALID"},
                )
        return records

    def _parse_single(
        self,
        rows: Optional[list[dict[str, JsonValue]]],
        fallback: RecordT,
    ) -> RecordT:
        """Return the first returned row as a model, or *fallback*.

        The remote may be configured to return no representation; the
        submitted record is then the best available answer.
        """
        if not rows:
            return fallback
        try:
            return self.MODEL.model_validate(normalize_keys(rows[0]))
        except ValidationError as exc:
            raise RemoteRejected(
                f"{self.TABLE} returned a row that failed validation.", exc,
            ) from exc

    # ------------------------------------------------------------------
    # Error classification
    # ------------------------------------------------------------------

    def _classify(self, exc: Exception, operation_name: str) -> SyncError:
        """Map a Supabase/transport exception to the ``SyncError`` taxonomy."""
        if isinstance(exc, SyncError):
            return exc

        if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError, RuntimeError)):
            self._logger.warning(
                "Supabase unavailable for %s: %s", operation_name, exc,
                extra={"event": "REMOTE_UNAVAILABLE"},
            )
            return RemoteUnavailable(f"Remote store unreachable during {operation_name}.", exc)

        if isinstance(exc, APIError):
            code = str(exc.code or "")
            if code.startswith(_UNAVAILABLE_CODE_PREFIX):
                self._logger.warning(
                    "Supabase backend unavailable for %s (%s): %s",
                    operation_name, code, exc.message,
                    extra={"event": "REMOTE_UNAVAILABLE", "error_code": code},
                )
                return RemoteUnavailable(
                    f"Remote database unreachable during {operation_name}.", exc,
                )
            if code in _NOT_FOUND_CODES:
                return NotFound(f"No matching record for {operation_name}.", exc)
            self._logger.warning(
                "Supabase rejected %s (%s): %s", operation_name, code, exc.message,
                extra={"event": "REMOTE_REJECTED", "error_code": code},
            )
            return RemoteRejected(f"Remote store rejected {operation_name}: {exc.message}", exc)

        if isinstance(exc, httpx.HTTPStatusError):
            return RemoteRejected(
                f"Remote store returned HTTP {exc.response.status_code} "
                f"during {operation_name}.",
                exc,
            )

        self._logger.error(
            "Unexpected Supabase failure for %s: %s", operation_name, exc,
            exc_info=True,
        )
        return RemoteUnavailable(f"Unexpected failure during {operation_name}.", exc)

"""
Snapshot Repository.

SQLite implementation of ``LocalDurableStore``.  Each (kind, owner) pair
has exactly one row in ``record_snapshots`` holding the whole collection
as a JSON array.  The store is best-effort: read failures produce an
empty snapshot and write failures are logged, never raised.

SQLite calls run in ``asyncio.to_thread`` under
``DatabaseManager.write_lock`` so the event loop is never blocked by disk
I/O.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import Generic

from pydantic import ValidationError

from finsync.database import DatabaseManager
from finsync.logger import StructuredLogger
from finsync.models.enums import RecordKind
from finsync.models.record import RecordT
from finsync.utils.string_helpers import normalize_keys


class SnapshotRepository(Generic[RecordT]):
    """Durable per-owner snapshot of one record kind.

    Parameters
    ----------
    db:
        ``DatabaseManager`` providing ``.sqlite`` and ``.write_lock``.
    kind:
        Which collection this store holds.
    model:
        Pydantic model used to validate rows read back.
    logger:
        Structured JSON logger.
    """

    TABLE: str = "record_snapshots"

    def __init__(
        self,
        db: DatabaseManager,
        kind: RecordKind,
        model: type[RecordT],
        logger: StructuredLogger,
    ) -> None:
        self._db = db
        self._kind = kind
        self._model = model
        self._logger = logger.bind(kind=kind.value)

    @property
    def kind(self) -> RecordKind:
        return self._kind

    # ------------------------------------------------------------------
    # LocalDurableStore
    # ------------------------------------------------------------------

    async def read_snapshot(self, owner_id: str) -> list[RecordT]:
        return await asyncio.to_thread(self._read_sync, owner_id)

    async def write_snapshot(self, owner_id: str, records: list[RecordT]) -> None:
        payload = json.dumps(
            [r.model_dump(mode="json", by_alias=True) for r in records],
            ensure_ascii=False,
        )
        await asyncio.to_thread(self._write_sync, owner_id, payload, len(records))

    # ------------------------------------------------------------------
    # Blocking helpers (worker thread)
    # ------------------------------------------------------------------

    def _read_sync(self, owner_id: str) -> list[RecordT]:
        try:
            with self._db.write_lock:
                row = self._db.sqlite.execute(
                    f"SELECT payload FROM {self.TABLE} WHERE kind = ? AND owner_id = ?",
                    (self._kind.value, owner_id),
                ).fetchone()
        except sqlite3.Error as exc:
            self._logger.error(
                "Failed to read %s snapshot for %s: %s", self._kind, owner_id, exc,
            )
            return []

        if row is None:
            return []

        try:
            items = json.loads(row["payload"])
        except (json.JSONDecodeError, TypeError) as exc:
            self._logger.error(
                "Malformed %s snapshot payload for %s: %s", self._kind, owner_id, exc,
            )
            return []

        records: list[RecordT] = []
        for item in items:
            try:
                records.append(self._model.model_validate(normalize_keys(item)))
            except ValidationError as exc:
                self._logger.warning(
                    "Skipping invalid %s snapshot entry %s: %s",
                    self._kind,
                    item.get("id", "?") if isinstance(item, dict) else "?",
                    exc.error_count(),
                )
        return records

    def _write_sync(self, owner_id: str, payload: str, record_count: int) -> None:
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    f"""
                    INSERT INTO {self.TABLE} (kind, owner_id, payload, record_count)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(kind, owner_id) DO UPDATE SET
                        payload      = excluded.payload,
                        record_count = excluded.record_count,
                        updated_at   = CURRENT_TIMESTAMP
                    """,
                    (self._kind.value, owner_id, payload, record_count),
                )
                self._db.sqlite.commit()
            self._logger.debug(
                "Wrote %s snapshot for %s (%d records).", self._kind, owner_id, record_count,
            )
        except sqlite3.Error as exc:
            self._logger.warning(
                "Failed to write %s snapshot for %s: %s", self._kind, owner_id, exc,
            )

"""Tests for the Supabase repositories (mocked client) and the SQLite snapshot store."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from finsync.database import DatabaseManager
from finsync.exceptions import NotFound, RemoteRejected, RemoteUnavailable
from finsync.logger import StructuredLogger
from finsync.models import PaymentMethod, RecordKind, Transaction
from finsync.repositories import (
    CategoryRepository,
    LocalDurableStore,
    RemotePersistence,
    SnapshotRepository,
    TransactionRepository,
)
from finsync.schema import initialize_schema
from tests.conftest import OWNER, make_tx


def _mock_client(
    data: Optional[list[dict[str, Any]]] = None,
    error: Optional[Exception] = None,
) -> tuple[MagicMock, MagicMock]:
    """Supabase client whose query builder chains back to itself."""
    builder = MagicMock()
    for method in ("select", "eq", "order", "insert", "update", "delete", "or_"):
        getattr(builder, method).return_value = builder
    if error is not None:
        builder.execute = AsyncMock(side_effect=error)
    else:
        builder.execute = AsyncMock(return_value=SimpleNamespace(data=data))
    client = MagicMock()
    client.table.return_value = builder
    return client, builder


class _OfflineDb:
    @property
    def supabase(self) -> Any:
        raise RuntimeError("Supabase client is not initialised.")


def _api_error(code: str) -> APIError:
    return APIError({"message": f"failure {code}", "code": code, "hint": None, "details": None})


ROW = {
    "id": "t1",
    "userId": OWNER,
    "categoryId": "food",
    "amount": "12.50",
    "paymentMethod": "bankTransfer",
    "transactionDate": "2026-03-15T12:00:00Z",
    "createdAt": "2026-03-15T12:00:00Z",
    "type": "expense",
}


class TestRemoteRepository:
    @pytest.mark.asyncio
    async def test_fetch_all_queries_owner_rows(self, logger: StructuredLogger):
        client, builder = _mock_client(data=[ROW])
        repo = TransactionRepository(SimpleNamespace(supabase=client), logger)

        records = await repo.fetch_all(OWNER)

        client.table.assert_called_once_with("expenses")
        builder.eq.assert_called_once_with("user_id", OWNER)
        builder.order.assert_called_once_with("transaction_date", desc=True)
        assert len(records) == 1
        assert records[0].amount == Decimal("12.50")
        assert records[0].payment_method == PaymentMethod.BANK_TRANSFER
        assert records[0].owner_id == OWNER

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, logger: StructuredLogger):
        client, _ = _mock_client(data=[ROW, {"id": "broken"}])
        repo = TransactionRepository(SimpleNamespace(supabase=client), logger)

        records = await repo.fetch_all(OWNER)

        assert [r.id for r in records] == ["t1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("owner_id", "expected"),
        [
            ("owner_1", 'user_id.eq."owner_1",is_default.eq.true'),
            (
                "abc,is_default.eq.false",
                'user_id.eq."abc,is_default.eq.false",is_default.eq.true',
            ),
            ('a"b\\c', 'user_id.eq."a\\"b\\\\c",is_default.eq.true'),
        ],
    )
    async def test_category_fetch_includes_defaults_and_quotes_owner(
        self, logger: StructuredLogger, owner_id: str, expected: str,
    ):
        client, builder = _mock_client(data=[])
        repo = CategoryRepository(SimpleNamespace(supabase=client), logger)

        await repo.fetch_all(owner_id)

        builder.or_.assert_called_once_with(expected)

    @pytest.mark.asyncio
    async def test_create_serialises_with_column_names(self, logger: StructuredLogger):
        client, builder = _mock_client(data=[ROW])
        repo = TransactionRepository(SimpleNamespace(supabase=client), logger)

        created = await repo.create(make_tx("t1", "12.50"))

        payload = builder.insert.call_args.args[0]
        assert payload["user_id"] == OWNER
        assert payload["type"] == "expense"
        assert "owner_id" not in payload
        assert created.id == "t1"

    @pytest.mark.asyncio
    async def test_create_without_representation_returns_submitted(
        self, logger: StructuredLogger,
    ):
        client, _ = _mock_client(data=[])
        repo = TransactionRepository(SimpleNamespace(supabase=client), logger)
        record = make_tx("t9")

        assert await repo.create(record) == record

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["update", "delete"])
    async def test_empty_mutation_result_is_not_found(self, logger: StructuredLogger, method: str):
        client, _ = _mock_client(data=[])
        repo = TransactionRepository(SimpleNamespace(supabase=client), logger)
        argument = make_tx("t1") if method == "update" else "t1"

        with pytest.raises(NotFound):
            await getattr(repo, method)(argument)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (httpx.ConnectError("refused"), RemoteUnavailable),
            (TimeoutError("slow"), RemoteUnavailable),
            (_api_error("PGRST000"), RemoteUnavailable),
            (_api_error("PGRST116"), NotFound),
            (_api_error("42501"), RemoteRejected),
            (_api_error("23505"), RemoteRejected),
        ],
    )
    async def test_error_classification(
        self, logger: StructuredLogger, error: Exception, expected: type,
    ):
        client, _ = _mock_client(error=error)
        repo = TransactionRepository(SimpleNamespace(supabase=client), logger)

        with pytest.raises(expected) as info:
            await repo.fetch_all(OWNER)

        assert info.value.original_error is error

    @pytest.mark.asyncio
    async def test_http_status_error_is_rejected(self, logger: StructuredLogger):
        request = httpx.Request("GET", "https://example.supabase.co/rest/v1/expenses")
        response = httpx.Response(403, request=request)
        error = httpx.HTTPStatusError("forbidden", request=request, response=response)
        client, _ = _mock_client(error=error)
        repo = TransactionRepository(SimpleNamespace(supabase=client), logger)

        with pytest.raises(RemoteRejected):
            await repo.update(make_tx("t1"))

    @pytest.mark.asyncio
    async def test_offline_client_is_unavailable(self, logger: StructuredLogger):
        repo = TransactionRepository(_OfflineDb(), logger)

        with pytest.raises(RemoteUnavailable):
            await repo.fetch_all(OWNER)

    def test_satisfies_protocol(self, logger: StructuredLogger):
        repo = TransactionRepository(_OfflineDb(), logger)
        assert isinstance(repo, RemotePersistence)


@pytest.fixture
def db(tmp_path: Path, logger: StructuredLogger):
    manager = DatabaseManager(sqlite_path=tmp_path / "finsync.db", logger=logger)
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def snapshots(db: DatabaseManager, logger: StructuredLogger) -> SnapshotRepository[Transaction]:
    return SnapshotRepository(db, RecordKind.TRANSACTIONS, Transaction, logger)


class TestSnapshotRepository:
    @pytest.mark.asyncio
    async def test_missing_snapshot_is_empty(self, snapshots: SnapshotRepository[Transaction]):
        assert await snapshots.read_snapshot(OWNER) == []

    @pytest.mark.asyncio
    async def test_write_replaces_previous_snapshot(
        self, snapshots: SnapshotRepository[Transaction], db: DatabaseManager,
    ):
        await snapshots.write_snapshot(OWNER, [make_tx("a"), make_tx("b")])
        await snapshots.write_snapshot(OWNER, [make_tx("c", "7.25")])

        restored = await snapshots.read_snapshot(OWNER)

        assert restored == [make_tx("c", "7.25")]
        row = db.sqlite.execute(
            "SELECT record_count FROM record_snapshots WHERE kind = ? AND owner_id = ?",
            ("transactions", OWNER),
        ).fetchone()
        assert row["record_count"] == 1

    @pytest.mark.asyncio
    async def test_snapshots_are_partitioned_by_kind_and_owner(
        self, snapshots: SnapshotRepository[Transaction], db: DatabaseManager,
        logger: StructuredLogger,
    ):
        other_kind = SnapshotRepository(db, RecordKind.GOALS, Transaction, logger)
        await snapshots.write_snapshot(OWNER, [make_tx("a")])

        assert await snapshots.read_snapshot("someone-else") == []
        assert await other_kind.read_snapshot(OWNER) == []

    @pytest.mark.asyncio
    async def test_malformed_payload_reads_as_empty(
        self, snapshots: SnapshotRepository[Transaction], db: DatabaseManager,
    ):
        db.sqlite.execute(
            "INSERT INTO record_snapshots (kind, owner_id, payload) VALUES (?, ?, ?)",
            ("transactions", OWNER, "{not json"),
        )
        db.sqlite.commit()

        assert await snapshots.read_snapshot(OWNER) == []

    @pytest.mark.asyncio
    async def test_invalid_entries_are_skipped(
        self, snapshots: SnapshotRepository[Transaction], db: DatabaseManager,
    ):
        db.sqlite.execute(
            "INSERT INTO record_snapshots (kind, owner_id, payload) VALUES (?, ?, ?)",
            ("transactions", OWNER, '[{"id": "x"}]'),
        )
        db.sqlite.commit()

        assert await snapshots.read_snapshot(OWNER) == []

    @pytest.mark.asyncio
    async def test_closed_database_degrades_quietly(
        self, snapshots: SnapshotRepository[Transaction], db: DatabaseManager,
    ):
        db.close()

        await snapshots.write_snapshot(OWNER, [make_tx("a")])
        assert await snapshots.read_snapshot(OWNER) == []

    def test_satisfies_protocol(self, snapshots: SnapshotRepository[Transaction]):
        assert isinstance(snapshots, LocalDurableStore)


def test_schema_initialisation_is_idempotent(db: DatabaseManager, logger: StructuredLogger):
    initialize_schema(db.sqlite, logger)
    version = db.sqlite.execute("SELECT version FROM schema_version").fetchone()
    assert version[0] == 1

"""End-to-end wiring of the service container against an offline database."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from finsync.config import AppConfig
from finsync.database import DatabaseManager
from finsync.exceptions import RemoteUnavailable
from finsync.logger import StructuredLogger
from finsync.models import CacheKey, Data, Error, RecordKind, Transaction
from finsync.repositories import SnapshotRepository
from finsync.schema import initialize_schema
from finsync.services import (
    create_cache_stores,
    create_sync_services,
    reset_sync_services,
    shutdown_sync_services,
    wait_for_sync_services,
)
from tests.conftest import OWNER, ManualClock, make_tx


@pytest.fixture
def offline_db(tmp_path: Path, logger: StructuredLogger):
    db = DatabaseManager(sqlite_path=tmp_path / "local.db", logger=logger)
    initialize_schema(db.sqlite, logger)
    yield db
    db.close()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(_env_file=None, SUPABASE_URL="", PAGE_SIZE=2)


@pytest.mark.asyncio
async def test_offline_session_serves_local_snapshots(
    offline_db: DatabaseManager, config: AppConfig, logger: StructuredLogger,
    clock: ManualClock,
):
    snapshots: SnapshotRepository[Transaction] = SnapshotRepository(
        offline_db, RecordKind.TRANSACTIONS, Transaction, logger,
    )
    await snapshots.write_snapshot(OWNER, [make_tx("a"), make_tx("b"), make_tx("c")])

    caches = create_cache_stores(config, clock=clock)
    services = create_sync_services(offline_db, config, OWNER, caches)
    await wait_for_sync_services(services)

    transactions = services["transactions"]
    assert isinstance(transactions.state, Data)
    assert [t.id for t in transactions.records] == ["a", "b", "c"]
    assert len(transactions.page(0).items) == 2
    assert len(transactions.page(1).items) == 1

    goals_state = services["goals"].state
    assert isinstance(goals_state, Error)
    assert isinstance(goals_state.cause, RemoteUnavailable)

    await shutdown_sync_services(services)


@pytest.mark.asyncio
async def test_caches_are_shared_across_owners_and_cleared_on_reset(
    offline_db: DatabaseManager, config: AppConfig, clock: ManualClock,
):
    caches = create_cache_stores(config, clock=clock)
    first = create_sync_services(offline_db, config, OWNER, caches, load_on_init=False)
    second = create_sync_services(offline_db, config, "owner-2", caches, load_on_init=False)

    assert first["caches"]["transactions"] is second["caches"]["transactions"]

    caches["transactions"].set(CacheKey(kind=RecordKind.TRANSACTIONS, owner_id=OWNER), [make_tx("a")])
    caches["goals"].set(CacheKey(kind=RecordKind.GOALS, owner_id="owner-2"), [])

    reset_sync_services(first)

    assert all(len(cache) == 0 for cache in caches.values())


@pytest.mark.asyncio
async def test_signed_out_session_is_empty(
    offline_db: DatabaseManager, config: AppConfig, clock: ManualClock,
):
    services = create_sync_services(
        offline_db, config, None, create_cache_stores(config, clock=clock),
    )
    await wait_for_sync_services(services)

    for kind in ("transactions", "budgets", "categories", "goals"):
        state = services[kind].state
        assert isinstance(state, Data)
        assert state.records == []
    assert services["transactions"].page(0).is_empty


def test_offline_database_reports_no_remote(offline_db: DatabaseManager):
    assert offline_db.is_online is False
    with pytest.raises(RuntimeError):
        offline_db.supabase


def test_cache_stores_log_through_injected_logger(tmp_path: Path, config: AppConfig):
    stream = io.StringIO()
    cache_logger = StructuredLogger(
        name="test_cache_stores", level=logging.DEBUG, stream=stream,
        log_file=str(tmp_path / "cache.log"),
    )
    cache_logger.logger.propagate = False
    caches = create_cache_stores(config, logger=cache_logger)

    assert caches["goals"].get(CacheKey(kind=RecordKind.GOALS, owner_id=OWNER)) is None

    (entry,) = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert entry["logger_name"] == "finsync.test_cache_stores"
    assert entry["message"].startswith("Cache miss")

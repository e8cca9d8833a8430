"""
Synchronisation Services Package.

Cache store, query helpers, pagination, the per-kind record coordinators
and the derived views built on them.

``create_cache_stores()`` builds the session-wide caches (one per record
kind, shared across owners) and ``create_sync_services()`` wires the
repositories and coordinators for one owner on top of them, returning a
typed dict the presentation layer can consume without knowing the
internal dependency graph.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional, TypedDict

from finsync.config import AppConfig
from finsync.database import DatabaseManager
from finsync.logger import StructuredLogger, get_logger
from finsync.models.budget import Budget
from finsync.models.category import Category
from finsync.models.enums import RecordKind
from finsync.models.goal import Goal
from finsync.models.sync_models import Page
from finsync.models.transaction import Transaction
from finsync.repositories.budget_repository import BudgetRepository
from finsync.repositories.category_repository import CategoryRepository
from finsync.repositories.goal_repository import GoalRepository
from finsync.repositories.snapshot_repository import SnapshotRepository
from finsync.repositories.transaction_repository import TransactionRepository
from finsync.services.budget_sync import BudgetSyncCoordinator
from finsync.services.cache_store import CacheStore
from finsync.services.category_sync import CategorySyncCoordinator
from finsync.services.goal_sync import GoalSyncCoordinator
from finsync.services.pagination import PaginationIndex
from finsync.services.transaction_sync import TransactionSyncCoordinator
from finsync.utils.dates import utc_now


class CacheStores(TypedDict):
    """Session-lifetime caches, one per record kind plus transaction pages."""

    transactions: CacheStore[list[Transaction]]
    budgets: CacheStore[list[Budget]]
    categories: CacheStore[list[Category]]
    goals: CacheStore[list[Goal]]
    transaction_pages: CacheStore[Page[Transaction]]


class SyncServices(TypedDict):
    """Typed container for one owner's coordinators."""

    owner_id: Optional[str]
    caches: CacheStores
    transaction_pages: PaginationIndex[Transaction]
    transactions: TransactionSyncCoordinator
    budgets: BudgetSyncCoordinator
    categories: CategorySyncCoordinator
    goals: GoalSyncCoordinator


def create_cache_stores(
    config: AppConfig,
    logger: Optional[StructuredLogger] = None,
    clock: Callable[[], datetime] = utc_now,
) -> CacheStores:
    """Build the caches once per application session.

    Every store logs through *logger*, the ``finsync.cache`` logger by default.
    """
    ttl = timedelta(seconds=config.CACHE_TTL_S)
    if logger is None:
        logger = get_logger("cache")

    def _store(name: str) -> CacheStore:
        return CacheStore(
            name=name,
            logger=logger,
            ttl=ttl,
            max_entries=config.CACHE_MAX_ENTRIES,
            clock=clock,
        )

    return CacheStores(
        transactions=_store(RecordKind.TRANSACTIONS.value),
        budgets=_store(RecordKind.BUDGETS.value),
        categories=_store(RecordKind.CATEGORIES.value),
        goals=_store(RecordKind.GOALS.value),
        transaction_pages=_store("transaction_pages"),
    )


def create_sync_services(
    db: DatabaseManager,
    config: AppConfig,
    owner_id: Optional[str],
    caches: CacheStores,
    load_on_init: bool = True,
) -> SyncServices:
    """
    Wire repositories and coordinators for *owner_id*.

    When called inside a running event loop with ``load_on_init`` the
    initial loads start immediately; await them with
    ``wait_for_sync_services``.

    Parameters
    ----------
    db:
        Initialised ``DatabaseManager`` (schema already created).
    config:
        Application configuration.
    owner_id:
        The signed-in owner, or ``None`` when no session is active.
    caches:
        Session-wide caches from ``create_cache_stores``.
    load_on_init:
        Forwarded to every coordinator.
    """
    repo_logger = get_logger("repositories")
    snapshot_logger = get_logger("snapshots")

    transaction_pages: PaginationIndex[Transaction] = PaginationIndex(
        kind=RecordKind.TRANSACTIONS,
        cache=caches["transaction_pages"],
        logger=get_logger("pagination"),
        page_size=config.PAGE_SIZE,
    )

    transactions = TransactionSyncCoordinator(
        owner_id=owner_id,
        remote=TransactionRepository(db, repo_logger),
        local=SnapshotRepository(db, RecordKind.TRANSACTIONS, Transaction, snapshot_logger),
        cache=caches["transactions"],
        logger=get_logger("sync.transactions"),
        pagination=transaction_pages,
        load_on_init=load_on_init,
    )
    budgets = BudgetSyncCoordinator(
        owner_id=owner_id,
        remote=BudgetRepository(db, repo_logger),
        local=SnapshotRepository(db, RecordKind.BUDGETS, Budget, snapshot_logger),
        cache=caches["budgets"],
        logger=get_logger("sync.budgets"),
        load_on_init=load_on_init,
    )
    categories = CategorySyncCoordinator(
        owner_id=owner_id,
        remote=CategoryRepository(db, repo_logger),
        local=SnapshotRepository(db, RecordKind.CATEGORIES, Category, snapshot_logger),
        cache=caches["categories"],
        logger=get_logger("sync.categories"),
        load_on_init=load_on_init,
    )
    goals = GoalSyncCoordinator(
        owner_id=owner_id,
        remote=GoalRepository(db, repo_logger),
        local=SnapshotRepository(db, RecordKind.GOALS, Goal, snapshot_logger),
        cache=caches["goals"],
        logger=get_logger("sync.goals"),
        load_on_init=load_on_init,
    )

    return SyncServices(
        owner_id=owner_id,
        caches=caches,
        transaction_pages=transaction_pages,
        transactions=transactions,
        budgets=budgets,
        categories=categories,
        goals=goals,
    )


def _coordinators(services: SyncServices) -> tuple[
    TransactionSyncCoordinator,
    BudgetSyncCoordinator,
    CategorySyncCoordinator,
    GoalSyncCoordinator,
]:
    return (
        services["transactions"],
        services["budgets"],
        services["categories"],
        services["goals"],
    )


async def wait_for_sync_services(services: SyncServices) -> None:
    """Await every coordinator's pending background loads."""
    await asyncio.gather(*(c.wait_for_background() for c in _coordinators(services)))


def reset_sync_services(services: SyncServices) -> None:
    """Clear every session cache (sign-out / global data reset)."""
    for cache in services["caches"].values():
        cache.clear()


async def shutdown_sync_services(services: SyncServices) -> None:
    """Drain background work of every coordinator.  Safe to call twice."""
    await asyncio.gather(*(c.close() for c in _coordinators(services)))

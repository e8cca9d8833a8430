"""Shared fixtures: in-memory collaborators, a manual clock and record factories."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Generic, Optional

import pytest

from finsync.exceptions import NotFound, SyncError
from finsync.logger import StructuredLogger
from finsync.models import (
    Budget,
    Category,
    EntryType,
    Goal,
    GoalCategory,
    GoalMilestone,
    Transaction,
)
from finsync.models.record import RecordT
from finsync.services.cache_store import CacheStore

OWNER = "owner-1"
T0 = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class ManualClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FakeRemote(Generic[RecordT]):
    """In-memory ``RemotePersistence``.

    ``fail_with`` makes every call raise until cleared.  ``transform`` is
    applied to records on create/update to mimic server-side changes.
    """

    def __init__(self, records: Iterable[RecordT] = ()) -> None:
        self.rows: list[RecordT] = list(records)
        self.fail_with: Optional[SyncError] = None
        self.transform: Callable[[RecordT], RecordT] = lambda r: r
        self.calls: list[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_all(self, owner_id: str) -> list[RecordT]:
        self._enter("fetch_all")
        return [r for r in self.rows if r.owner_id == owner_id]

    async def create(self, record: RecordT) -> RecordT:
        self._enter("create")
        stored = self.transform(record)
        self.rows.append(stored)
        return stored

    async def update(self, record: RecordT) -> RecordT:
        self._enter("update")
        if not any(r.id == record.id for r in self.rows):
            raise NotFound(f"{record.id} not found")
        stored = self.transform(record)
        self.rows = [stored if r.id == record.id else r for r in self.rows]
        return stored

    async def delete(self, record_id: str) -> None:
        self._enter("delete")
        if not any(r.id == record_id for r in self.rows):
            raise NotFound(f"{record_id} not found")
        self.rows = [r for r in self.rows if r.id != record_id]


class FakeLocal(Generic[RecordT]):
    """In-memory ``LocalDurableStore``."""

    def __init__(self) -> None:
        self.snapshots: dict[str, list[RecordT]] = {}
        self.writes: int = 0

    async def read_snapshot(self, owner_id: str) -> list[RecordT]:
        return list(self.snapshots.get(owner_id, []))

    async def write_snapshot(self, owner_id: str, records: list[RecordT]) -> None:
        self.writes += 1
        self.snapshots[owner_id] = list(records)


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

def make_tx(
    tx_id: str,
    amount: str | int = 10,
    when: datetime = T0,
    category_id: str = "food",
    entry_type: EntryType = EntryType.EXPENSE,
    owner_id: str = OWNER,
    description: str = "",
) -> Transaction:
    return Transaction(
        id=tx_id,
        owner_id=owner_id,
        category_id=category_id,
        amount=Decimal(str(amount)),
        transaction_date=when,
        created_at=when,
        entry_type=entry_type,
        description=description,
    )


def make_budget(
    budget_id: str,
    category_id: str = "food",
    amount: str | int = 100,
    start: datetime = datetime(2026, 3, 1, tzinfo=timezone.utc),
    end: datetime = datetime(2026, 3, 31, 23, 59, tzinfo=timezone.utc),
    created_at: datetime = T0,
    is_active: bool = True,
    alert_threshold: float = 0.8,
    owner_id: str = OWNER,
) -> Budget:
    return Budget(
        id=budget_id,
        owner_id=owner_id,
        category_id=category_id,
        amount=Decimal(str(amount)),
        start_date=start,
        end_date=end,
        created_at=created_at,
        is_active=is_active,
        alert_threshold=alert_threshold,
    )


def make_category(
    category_id: str,
    name: str,
    entry_type: EntryType = EntryType.EXPENSE,
    created_at: datetime = T0,
    owner_id: Optional[str] = OWNER,
    is_active: bool = True,
) -> Category:
    return Category(
        id=category_id,
        owner_id=owner_id,
        name=name,
        entry_type=entry_type,
        created_at=created_at,
        is_active=is_active,
    )


def make_goal(
    goal_id: str,
    target: str | int = 1000,
    current: str | int = 0,
    start: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc),
    target_date: datetime = datetime(2026, 12, 31, tzinfo=timezone.utc),
    priority: int = 3,
    is_completed: bool = False,
    is_active: bool = True,
    created_at: datetime = T0,
    milestones: tuple[GoalMilestone, ...] = (),
    owner_id: str = OWNER,
    category: GoalCategory = GoalCategory.OTHER,
    description: str = "",
) -> Goal:
    return Goal(
        id=goal_id,
        owner_id=owner_id,
        title=f"Goal {goal_id}",
        description=description,
        category=category,
        target_amount=Decimal(str(target)),
        current_amount=Decimal(str(current)),
        start_date=start,
        target_date=target_date,
        priority=priority,
        is_completed=is_completed,
        is_active=is_active,
        created_at=created_at,
        updated_at=created_at,
        milestones=milestones,
    )


def make_milestone(milestone_id: str, target: str | int = 100) -> GoalMilestone:
    return GoalMilestone(
        id=milestone_id,
        title=f"Milestone {milestone_id}",
        target_amount=Decimal(str(target)),
        target_date=datetime(2026, 6, 30, tzinfo=timezone.utc),
        created_at=T0,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def logger(tmp_path_factory: pytest.TempPathFactory) -> StructuredLogger:
    log_file = tmp_path_factory.mktemp("logs") / "finsync-test.log"
    return StructuredLogger(name="finsync.test", level=logging.DEBUG, log_file=str(log_file))


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def tx_cache(logger: StructuredLogger, clock: ManualClock) -> CacheStore[list[Transaction]]:
    return CacheStore(name="transactions", logger=logger, clock=clock)


@pytest.fixture
def remote() -> FakeRemote[Transaction]:
    return FakeRemote()


@pytest.fixture
def local() -> FakeLocal[Transaction]:
    return FakeLocal()

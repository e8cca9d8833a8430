"""
Goal coordinator.

Adds progress, completion and milestone operations on top of the generic
coordinator, plus category and text lookups.  Each operation derives the new goal from the last-known-good
collection and goes through the same write-through ``update`` path, so
the published goal is always the one returned by the remote store.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable, ClassVar, Optional

from finsync.exceptions import NotFound
from finsync.logger import StructuredLogger
from finsync.models.enums import GoalCategory, RecordKind
from finsync.models.goal import Goal, GoalMilestone
from finsync.repositories.protocols import LocalDurableStore, RemotePersistence
from finsync.services.cache_store import CacheStore
from finsync.services.pagination import PaginationIndex
from finsync.services.sync_coordinator import RecordSyncCoordinator
from finsync.utils.dates import utc_now


class GoalSyncCoordinator(RecordSyncCoordinator[Goal]):
    """Coordinator for the ``goals`` kind.

    Parameters
    ----------
    clock:
        Source of ``updated_at`` / ``completed_at`` timestamps.  The other
        parameters are those of ``RecordSyncCoordinator``.
    """

    KIND: ClassVar[RecordKind] = RecordKind.GOALS

    def __init__(
        self,
        owner_id: Optional[str],
        remote: RemotePersistence[Goal],
        local: LocalDurableStore[Goal],
        cache: CacheStore[list[Goal]],
        logger: StructuredLogger,
        pagination: Optional[PaginationIndex[Goal]] = None,
        load_on_init: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._clock = clock
        super().__init__(
            owner_id, remote, local, cache, logger,
            pagination=pagination, load_on_init=load_on_init,
        )

    # ------------------------------------------------------------------
    # Goal operations
    # ------------------------------------------------------------------

    async def add_progress(self, goal_id: str, amount: Decimal) -> Goal:
        """Add *amount* to the goal's saved total.

        The goal is marked completed once the total reaches the target.
        """
        async with self._lock:
            goal = self._find("add_progress", goal_id)
            current = goal.current_amount + amount
            return await self._update_locked(goal.model_copy(update={
                "current_amount": current,
                "is_completed": current >= goal.target_amount,
                "updated_at": self._clock(),
            }))

    async def set_progress(self, goal_id: str, amount: Decimal) -> Goal:
        """Replace the goal's saved total with *amount*."""
        async with self._lock:
            goal = self._find("set_progress", goal_id)
            return await self._update_locked(goal.model_copy(update={
                "current_amount": amount,
                "is_completed": amount >= goal.target_amount,
                "updated_at": self._clock(),
            }))

    async def complete(self, goal_id: str) -> Goal:
        async with self._lock:
            goal = self._find("complete", goal_id)
            return await self._update_locked(goal.model_copy(update={
                "current_amount": goal.target_amount,
                "is_completed": True,
                "updated_at": self._clock(),
            }))

    async def add_milestone(self, goal_id: str, milestone: GoalMilestone) -> Goal:
        async with self._lock:
            goal = self._find("add_milestone", goal_id)
            return await self._update_locked(goal.model_copy(update={
                "milestones": (*goal.milestones, milestone),
                "updated_at": self._clock(),
            }))

    async def complete_milestone(self, goal_id: str, milestone_id: str) -> Goal:
        """Mark one milestone of a goal as completed."""
        async with self._lock:
            goal = self._find("complete_milestone", goal_id)
            if not any(m.id == milestone_id for m in goal.milestones):
                exc = NotFound(f"Milestone {milestone_id} not found on goal {goal_id}")
                self._fail("complete_milestone", exc)
                raise exc
            now = self._clock()
            milestones = tuple(
                m.model_copy(update={"is_completed": True, "completed_at": now})
                if m.id == milestone_id else m
                for m in goal.milestones
            )
            return await self._update_locked(goal.model_copy(update={
                "milestones": milestones,
                "updated_at": now,
            }))

    def active_goals(self) -> list[Goal]:
        return [g for g in self.last_known_good if g.is_active and not g.is_completed]

    def by_category(self, category: GoalCategory) -> list[Goal]:
        """Goals in *category*, highest priority first."""
        matching = [g for g in self.last_known_good if g.category == category]
        matching.sort(key=lambda g: -g.priority)
        return matching

    def search(self, query: str) -> list[Goal]:
        """Case-insensitive substring match on title or description."""
        needle = query.casefold()
        return [
            g for g in self.last_known_good
            if needle in g.title.casefold() or needle in g.description.casefold()
        ]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _find(self, operation: str, goal_id: str) -> Goal:
        for goal in self.last_known_good:
            if goal.id == goal_id:
                return goal
        exc = NotFound(f"Goal {goal_id} not found")
        self._fail(operation, exc)
        raise exc

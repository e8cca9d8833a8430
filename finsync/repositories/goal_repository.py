"""
Goal Repository.

Remote access to the ``goals`` table.  Milestones are stored inline as a
JSON array column.
"""

from __future__ import annotations

from finsync.models.goal import Goal
from finsync.repositories.base_repository import RemoteRepository


class GoalRepository(RemoteRepository[Goal]):
    """Data access layer for Goal entities."""

    TABLE = "goals"
    MODEL = Goal

"""
Budget Repository.

Remote access to the ``budgets`` table.
"""

from __future__ import annotations

from finsync.models.budget import Budget
from finsync.repositories.base_repository import RemoteRepository


class BudgetRepository(RemoteRepository[Budget]):
    """Data access layer for Budget entities."""

    TABLE = "budgets"
    MODEL = Budget

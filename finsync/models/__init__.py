from __future__ import annotations

"""
Data Models Package.

Re-exports all Pydantic models for short imports:
    from finsync.models import Transaction, Budget, Category, Goal
    from finsync.models import RecordKind, EntryType
    from finsync.models import CacheKey, Data, Loading, Error
"""

from finsync.models.enums import (
    BudgetPeriod,
    EntryType,
    GoalCategory,
    GoalType,
    PaymentMethod,
    RecordKind,
)
from finsync.models.record import Record
from finsync.models.transaction import Transaction
from finsync.models.budget import Budget
from finsync.models.category import Category
from finsync.models.goal import Goal, GoalMilestone
from finsync.models.sync_models import (
    CacheEntry,
    CacheKey,
    CacheStats,
    Data,
    Error,
    Loading,
    Page,
    Ready,
    SyncState,
    ViewState,
)
from finsync.models.view_models import (
    BudgetProgress,
    BudgetSummary,
    GoalsStatistics,
    PeriodTotals,
)

__all__ = [
    "BudgetPeriod",
    "EntryType",
    "GoalCategory",
    "GoalType",
    "PaymentMethod",
    "RecordKind",
    "Record",
    "Transaction",
    "Budget",
    "Category",
    "Goal",
    "GoalMilestone",
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "Data",
    "Error",
    "Loading",
    "Page",
    "Ready",
    "SyncState",
    "ViewState",
    "BudgetProgress",
    "BudgetSummary",
    "GoalsStatistics",
    "PeriodTotals",
]

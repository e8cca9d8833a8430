"""
Derived View Output Models.

Read-only summaries produced by ``finsync.services.derived_views``.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from finsync.models.budget import Budget


class PeriodTotals(BaseModel):
    """Spend and income over one period window."""

    model_config = ConfigDict(frozen=True)

    spent: Decimal = Decimal("0")
    income: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.spent


class BudgetProgress(BaseModel):
    """Current-period spend for one budget's category.

    ``ratio`` is ``spent / budget.amount`` clamped to ``[0, +inf)``; a
    zero-amount budget with any spend reports ``inf``.
    """

    model_config = ConfigDict(frozen=True)

    budget: Budget
    spent: Decimal
    ratio: float
    is_over_budget: bool
    is_near_limit: bool

    @property
    def remaining(self) -> Decimal:
        return self.budget.amount - self.spent


class BudgetSummary(BaseModel):
    """Totals across every active current-period budget."""

    model_config = ConfigDict(frozen=True)

    total_budget: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    active_budgets: int = 0
    over_budget_count: int = 0
    near_limit_count: int = 0

    @property
    def remaining_budget(self) -> Decimal:
        return self.total_budget - self.total_spent

    @property
    def spent_percentage(self) -> float:
        if self.total_budget <= 0:
            return 0.0
        return float(self.total_spent / self.total_budget * 100)


class GoalsStatistics(BaseModel):
    """Aggregate progress across a user's goals."""

    model_config = ConfigDict(frozen=True)

    total_goals: int = 0
    active_goals: int = 0
    completed_goals: int = 0
    overdue_goals: int = 0
    on_track_goals: int = 0
    average_progress: float = 0.0
    total_target_amount: Decimal = Decimal("0")
    total_current_amount: Decimal = Decimal("0")

    @property
    def completion_rate(self) -> float:
        return self.completed_goals / self.total_goals * 100 if self.total_goals else 0.0

    @property
    def on_track_rate(self) -> float:
        return self.on_track_goals / self.active_goals * 100 if self.active_goals else 0.0

    @property
    def progress_rate(self) -> float:
        if self.total_target_amount <= 0:
            return 0.0
        return float(self.total_current_amount / self.total_target_amount * 100)

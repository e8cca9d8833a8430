"""
Goal Model.

Savings/payoff goals with optional milestones.  Progress metrics are
computed from the stored amounts; time-dependent ones take ``now``
explicitly so derived views stay deterministic under test.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finsync.models.enums import GoalCategory, GoalType
from finsync.models.record import Record
from finsync.utils.dates import ensure_utc

# Average month length used for the monthly-savings estimate.
_DAYS_PER_MONTH: float = 30.44

# Share of the time-proportional progress a goal must reach to count as on track.
_ON_TRACK_TOLERANCE: float = 0.9


class GoalMilestone(BaseModel):
    """An intermediate target inside a goal."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    title: str
    description: str = ""
    target_amount: Decimal = Field(ge=0)
    target_date: datetime
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("target_date", "completed_at", "created_at", mode="after")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class Goal(Record):
    """Represents a financial goal owned by one user."""

    title: str
    description: str = ""
    target_amount: Decimal = Field(ge=0)
    current_amount: Decimal = Decimal("0")
    start_date: datetime
    target_date: datetime
    category: GoalCategory = GoalCategory.OTHER
    goal_type: GoalType = Field(default=GoalType.SAVINGS, alias="type")
    is_completed: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    image_url: Optional[str] = None
    milestones: tuple[GoalMilestone, ...] = ()
    monthly_contribution: Optional[Decimal] = None
    currency: str = "NPR"
    priority: int = Field(default=3, ge=1, le=5)

    @property
    def event_date(self) -> datetime:
        return self.created_at

    @property
    def progress_percentage(self) -> float:
        """Current amount as a percentage of the target, clamped to 0–100."""
        if self.target_amount <= 0:
            return 0.0
        pct = float(self.current_amount / self.target_amount * 100)
        return min(max(pct, 0.0), 100.0)

    @property
    def remaining_amount(self) -> Decimal:
        remaining = self.target_amount - self.current_amount
        return min(max(remaining, Decimal("0")), self.target_amount)

    @property
    def total_days(self) -> int:
        return (self.target_date - self.start_date).days

    def days_remaining(self, now: datetime) -> int:
        if now > self.target_date:
            return 0
        return (self.target_date - now).days

    def is_overdue(self, now: datetime) -> bool:
        return now > self.target_date and not self.is_completed

    def is_on_track(self, now: datetime) -> bool:
        """Compare actual progress with the time-proportional expectation."""
        if self.total_days <= 0:
            return self.is_completed or self.progress_percentage >= 100.0
        expected = (now - self.start_date).days / self.total_days * 100
        return self.progress_percentage >= expected * _ON_TRACK_TOLERANCE

    def required_monthly_savings(self, now: datetime) -> Decimal:
        remaining_months = math.ceil((self.target_date - now).days / _DAYS_PER_MONTH)
        if remaining_months <= 0:
            return self.remaining_amount
        return self.remaining_amount / remaining_months

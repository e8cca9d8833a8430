"""
Budget Model.

A spending limit for one category over a bounded period.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import Field, model_validator

from finsync.models.enums import BudgetPeriod
from finsync.models.record import Record


class Budget(Record):
    """Represents a category spending limit for ``[start_date, end_date]``."""

    category_id: str
    amount: Decimal = Field(ge=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: datetime
    end_date: datetime
    created_at: datetime
    is_active: bool = True
    alert_threshold: float = Field(default=0.8, ge=0)
    enable_notifications: bool = True

    @model_validator(mode="after")
    def _check_bounds(self) -> "Budget":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

    @property
    def event_date(self) -> datetime:
        return self.created_at

    def is_current_period(self, now: datetime) -> bool:
        """``True`` when *now* lies strictly inside the budget window."""
        return self.start_date < now < self.end_date

    def days_remaining(self, now: datetime) -> int:
        if now > self.end_date:
            return 0
        return (self.end_date - now).days

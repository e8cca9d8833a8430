"""Budget coordinator."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from finsync.models.budget import Budget
from finsync.models.enums import RecordKind
from finsync.services.sync_coordinator import RecordSyncCoordinator


class BudgetSyncCoordinator(RecordSyncCoordinator[Budget]):
    """Coordinator for the ``budgets`` kind, newest budget first."""

    KIND: ClassVar[RecordKind] = RecordKind.BUDGETS

    def active_budgets(self, now: datetime) -> list[Budget]:
        """Active budgets whose window contains *now*."""
        return [b for b in self.last_known_good if b.is_active and b.is_current_period(now)]

    def budget_exists_for(
        self,
        category_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """``True`` if an active budget for *category_id* overlaps ``[start, end]``.

        Used before creating or editing a budget; pass the edited budget's
        id as *exclude_id* so it does not collide with itself.
        """
        for budget in self.last_known_good:
            if budget.id == exclude_id or not budget.is_active:
                continue
            if budget.category_id != category_id:
                continue
            if budget.start_date <= end and start <= budget.end_date:
                return True
        return False

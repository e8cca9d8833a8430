"""
Derived Views.

Read-only projections over coordinator state.  The projection functions
are pure and take ``now`` explicitly; ``DerivedView`` binds one of them to
one or more coordinators and re-evaluates it on every upstream publish.

Period windows are half-open ``[start, end)`` and are computed from the
clock at evaluation time, never cached across a month boundary.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Generic, TypeVar

from finsync.logger import StructuredLogger
from finsync.models.budget import Budget
from finsync.models.enums import BudgetPeriod, EntryType
from finsync.models.goal import Goal
from finsync.models.record import RecordT
from finsync.models.sync_models import Data, Error, Loading, Ready, SyncState, ViewState
from finsync.models.transaction import Transaction
from finsync.models.view_models import (
    BudgetProgress,
    BudgetSummary,
    GoalsStatistics,
    PeriodTotals,
)
from finsync.services.budget_sync import BudgetSyncCoordinator
from finsync.services.goal_sync import GoalSyncCoordinator
from finsync.services.query_engine import aggregate_by_category
from finsync.services.state_holder import StateHolder, Unsubscribe
from finsync.services.sync_coordinator import RecordSyncCoordinator
from finsync.services.transaction_sync import TransactionSyncCoordinator
from finsync.utils.dates import month_bounds, shift_month, utc_now

V = TypeVar("V")

DEFAULT_RECENT_LIMIT: int = 10
DEFAULT_PRIORITY_LIMIT: int = 3
RECOMMENDATION_LOOKBACK_MONTHS: int = 3

# Scale from an average month to one budget period.
_PERIOD_FACTOR: dict[BudgetPeriod, Decimal] = {
    BudgetPeriod.WEEKLY: Decimal("0.25"),
    BudgetPeriod.MONTHLY: Decimal("1"),
    BudgetPeriod.QUARTERLY: Decimal("3"),
    BudgetPeriod.YEARLY: Decimal("12"),
}


# ---------------------------------------------------------------------------
# Pure projections
# ---------------------------------------------------------------------------

def recent_records(records: Sequence[RecordT], limit: int = DEFAULT_RECENT_LIMIT) -> list[RecordT]:
    """First *limit* records of an already sorted collection."""
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    return list(records[:limit])


def current_period_records(records: Sequence[RecordT], now: datetime) -> list[RecordT]:
    """Records whose ``event_date`` falls in the calendar month containing *now*."""
    start, end = month_bounds(now)
    return [r for r in records if start <= r.event_date < end]


def current_period_totals(transactions: Sequence[Transaction], now: datetime) -> PeriodTotals:
    current = current_period_records(transactions, now)
    spent = sum(aggregate_by_category(current).values(), Decimal("0"))
    income = sum(
        (tx.amount for tx in current if tx.entry_type == EntryType.INCOME),
        Decimal("0"),
    )
    return PeriodTotals(spent=spent, income=income)


def budget_progress(budget: Budget, transactions: Sequence[Transaction]) -> BudgetProgress:
    """Spend in the budget's category over the budget's own window.

    The ratio is clamped to ``[0, +inf)``.  A zero-amount budget reports
    ``inf`` once anything is spent and ``0.0`` otherwise.
    """
    by_category = aggregate_by_category(transactions, budget.start_date, budget.end_date)
    spent = by_category.get(budget.category_id, Decimal("0"))

    if budget.amount > 0:
        ratio = max(float(spent / budget.amount), 0.0)
    else:
        ratio = float("inf") if spent > 0 else 0.0

    over = spent > budget.amount
    return BudgetProgress(
        budget=budget,
        spent=spent,
        ratio=ratio,
        is_over_budget=over,
        is_near_limit=not over and ratio >= budget.alert_threshold,
    )


def all_budget_progress(
    budgets: Sequence[Budget],
    transactions: Sequence[Transaction],
    now: datetime,
) -> list[BudgetProgress]:
    """Progress for every active budget whose window contains *now*."""
    return [
        budget_progress(b, transactions)
        for b in budgets
        if b.is_active and b.is_current_period(now)
    ]


def recommended_budget_amount(
    transactions: Sequence[Transaction],
    category_id: str,
    period: BudgetPeriod,
    now: datetime,
    lookback_months: int = RECOMMENDATION_LOOKBACK_MONTHS,
) -> Decimal:
    """Suggested budget for *category_id* from recent spending history.

    Averages the monthly expense total over the *lookback_months* calendar
    months before the one containing *now*, then scales it to *period*.
    Months without spending are left out of the average; with no history
    at all the suggestion is zero.
    """
    current_start, _ = month_bounds(now)
    monthly: list[Decimal] = []
    for back in range(1, lookback_months + 1):
        start = shift_month(current_start, -back)
        end = shift_month(start, 1)
        spent = sum(
            (
                tx.amount for tx in transactions
                if tx.is_expense and tx.category_id == category_id
                and start <= tx.transaction_date < end
            ),
            Decimal("0"),
        )
        if spent > 0:
            monthly.append(spent)
    if not monthly:
        return Decimal("0")
    return sum(monthly, Decimal("0")) / len(monthly) * _PERIOD_FACTOR[period]


def budget_summary(progress: Sequence[BudgetProgress]) -> BudgetSummary:
    return BudgetSummary(
        total_budget=sum((p.budget.amount for p in progress), Decimal("0")),
        total_spent=sum((p.spent for p in progress), Decimal("0")),
        active_budgets=len(progress),
        over_budget_count=sum(1 for p in progress if p.is_over_budget),
        near_limit_count=sum(1 for p in progress if p.is_near_limit),
    )


def goals_statistics(goals: Sequence[Goal], now: datetime) -> GoalsStatistics:
    """Counts and totals across all of an owner's goals.

    ``active`` means active and not yet completed; overdue and on-track
    counts are taken over active goals only.
    """
    active = [g for g in goals if g.is_active and not g.is_completed]
    average = (
        sum(g.progress_percentage for g in goals) / len(goals) if goals else 0.0
    )
    return GoalsStatistics(
        total_goals=len(goals),
        active_goals=len(active),
        completed_goals=sum(1 for g in goals if g.is_completed),
        overdue_goals=sum(1 for g in active if g.is_overdue(now)),
        on_track_goals=sum(1 for g in active if g.is_on_track(now)),
        average_progress=average,
        total_target_amount=sum((g.target_amount for g in goals), Decimal("0")),
        total_current_amount=sum((g.current_amount for g in goals), Decimal("0")),
    )


def priority_goals(goals: Sequence[Goal], limit: int = DEFAULT_PRIORITY_LIMIT) -> list[Goal]:
    """Open goals by priority (highest first), then nearest target date."""
    open_goals = [g for g in goals if g.is_active and not g.is_completed]
    open_goals.sort(key=lambda g: (-g.priority, g.target_date))
    return open_goals[:limit]


def recommended_monthly_savings(goals: Sequence[Goal], now: datetime) -> Decimal:
    """Total monthly saving needed to keep every open goal on schedule."""
    return sum(
        (g.required_monthly_savings(now) for g in goals if g.is_active and not g.is_completed),
        Decimal("0"),
    )


def goals_requiring_attention(goals: Sequence[Goal], now: datetime) -> list[Goal]:
    """Open goals that are overdue or behind schedule, nearest deadline first."""
    flagged = [
        g for g in goals
        if g.is_active and not g.is_completed
        and (g.is_overdue(now) or not g.is_on_track(now))
    ]
    flagged.sort(key=lambda g: g.target_date)
    return flagged


# ---------------------------------------------------------------------------
# Reactive wrapper
# ---------------------------------------------------------------------------

class DerivedView(Generic[V]):
    """A projection bound to one or more coordinators.

    ``project`` receives one record list per source, in order, followed by
    the evaluation time.  ``value`` is:

    - ``Error(cause)`` if any source is in ``Error``;
    - ``Loading`` if any source is not yet ``Data``;
    - ``Ready(project(...))`` otherwise.

    ``value`` re-runs the projection on every read; subscribers are
    notified with a freshly computed value on every upstream publish.
    """

    def __init__(
        self,
        sources: Sequence[RecordSyncCoordinator[Any]],
        project: Callable[..., V],
        logger: StructuredLogger,
        clock: Callable[[], datetime] = utc_now,
        name: str = "derived view",
    ) -> None:
        if not sources:
            raise ValueError("DerivedView needs at least one source")
        self._sources = tuple(sources)
        self._project = project
        self._clock = clock
        self._holder: StateHolder[ViewState[V]] = StateHolder(Loading(), logger, name=name)
        self._unsubscribes: list[Unsubscribe] = [
            s.subscribe(self._on_upstream) for s in self._sources
        ]

    @property
    def value(self) -> ViewState[V]:
        return self._evaluate()

    def subscribe(self, observer: Callable[[ViewState[V]], None]) -> Unsubscribe:
        return self._holder.subscribe(observer)

    def close(self) -> None:
        """Stop listening to the sources."""
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes.clear()

    def _on_upstream(self, _state: SyncState[Any]) -> None:
        self._holder.publish(self._evaluate())

    def _evaluate(self) -> ViewState[V]:
        states = [s.state for s in self._sources]
        for state in states:
            if isinstance(state, Error):
                return Error(cause=state.cause)
        if not all(isinstance(state, Data) for state in states):
            return Loading()
        lists = [list(state.records) for state in states]  # type: ignore[union-attr]
        return Ready(value=self._project(*lists, self._clock()))


# ---------------------------------------------------------------------------
# View factories
# ---------------------------------------------------------------------------

def recent_transactions_view(
    transactions: TransactionSyncCoordinator,
    logger: StructuredLogger,
    limit: int = DEFAULT_RECENT_LIMIT,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[list[Transaction]]:
    return DerivedView(
        [transactions],
        lambda txs, _now: recent_records(txs, limit),
        logger, clock, name="recent transactions",
    )


def current_month_transactions_view(
    transactions: TransactionSyncCoordinator,
    logger: StructuredLogger,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[list[Transaction]]:
    return DerivedView(
        [transactions], current_period_records, logger, clock,
        name="current month transactions",
    )


def current_month_totals_view(
    transactions: TransactionSyncCoordinator,
    logger: StructuredLogger,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[PeriodTotals]:
    return DerivedView(
        [transactions], current_period_totals, logger, clock,
        name="current month totals",
    )


def budget_progress_view(
    budgets: BudgetSyncCoordinator,
    transactions: TransactionSyncCoordinator,
    logger: StructuredLogger,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[list[BudgetProgress]]:
    return DerivedView(
        [budgets, transactions], all_budget_progress, logger, clock,
        name="budget progress",
    )


def budget_summary_view(
    budgets: BudgetSyncCoordinator,
    transactions: TransactionSyncCoordinator,
    logger: StructuredLogger,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[BudgetSummary]:
    return DerivedView(
        [budgets, transactions],
        lambda bs, txs, now: budget_summary(all_budget_progress(bs, txs, now)),
        logger, clock, name="budget summary",
    )


def goals_statistics_view(
    goals: GoalSyncCoordinator,
    logger: StructuredLogger,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[GoalsStatistics]:
    return DerivedView([goals], goals_statistics, logger, clock, name="goals statistics")


def priority_goals_view(
    goals: GoalSyncCoordinator,
    logger: StructuredLogger,
    limit: int = DEFAULT_PRIORITY_LIMIT,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[list[Goal]]:
    return DerivedView(
        [goals], lambda gs, _now: priority_goals(gs, limit), logger, clock,
        name="priority goals",
    )


def goals_attention_view(
    goals: GoalSyncCoordinator,
    logger: StructuredLogger,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[list[Goal]]:
    return DerivedView(
        [goals], goals_requiring_attention, logger, clock,
        name="goals requiring attention",
    )


def recommended_savings_view(
    goals: GoalSyncCoordinator,
    logger: StructuredLogger,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[Decimal]:
    return DerivedView(
        [goals], recommended_monthly_savings, logger, clock,
        name="recommended monthly savings",
    )


def recommended_budget_view(
    transactions: TransactionSyncCoordinator,
    category_id: str,
    logger: StructuredLogger,
    period: BudgetPeriod = BudgetPeriod.MONTHLY,
    clock: Callable[[], datetime] = utc_now,
) -> DerivedView[Decimal]:
    """Suggested amount for a new *category_id* budget, kept current with spending."""
    return DerivedView(
        [transactions],
        lambda txs, now: recommended_budget_amount(txs, category_id, period, now),
        logger, clock, name=f"recommended budget ({category_id})",
    )

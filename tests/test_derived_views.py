"""Tests for the derived projections and the reactive DerivedView wrapper."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest

from finsync.exceptions import RemoteUnavailable
from finsync.logger import StructuredLogger
from finsync.models import (
    Budget,
    BudgetPeriod,
    EntryType,
    Error,
    Goal,
    Loading,
    Ready,
    Transaction,
)
from finsync.services import derived_views as dv
from finsync.services.budget_sync import BudgetSyncCoordinator
from finsync.services.cache_store import CacheStore
from finsync.services.transaction_sync import TransactionSyncCoordinator
from tests.conftest import (
    OWNER,
    T0,
    FakeLocal,
    FakeRemote,
    ManualClock,
    make_budget,
    make_goal,
    make_tx,
)

MARCH_1 = datetime(2026, 3, 1, tzinfo=timezone.utc)
APRIL_1 = datetime(2026, 4, 1, tzinfo=timezone.utc)


class TestPeriodProjections:
    def test_recent_records(self):
        records = [make_tx(str(i)) for i in range(15)]
        assert [r.id for r in dv.recent_records(records, 10)] == [str(i) for i in range(10)]
        assert dv.recent_records(records[:3], 10) == records[:3]

    def test_recent_records_rejects_negative_limit(self):
        with pytest.raises(ValueError):
            dv.recent_records([], -1)

    def test_current_period_is_half_open(self):
        records = [
            make_tx("next-month", when=APRIL_1),
            make_tx("last-moment", when=APRIL_1 - timedelta(microseconds=1)),
            make_tx("first-moment", when=MARCH_1),
            make_tx("previous-month", when=MARCH_1 - timedelta(seconds=1)),
        ]
        result = dv.current_period_records(records, T0)
        assert [r.id for r in result] == ["last-moment", "first-moment"]

    def test_current_period_totals(self):
        records = [
            make_tx("1", 40, when=T0),
            make_tx("2", 10, when=T0, category_id="fuel"),
            make_tx("3", 300, when=T0, entry_type=EntryType.INCOME),
            make_tx("4", 999, when=MARCH_1 - timedelta(days=1)),
        ]
        totals = dv.current_period_totals(records, T0)
        assert totals.spent == Decimal("50")
        assert totals.income == Decimal("300")
        assert totals.net == Decimal("250")

    def test_december_window_rolls_into_next_year(self):
        now = datetime(2026, 12, 20, tzinfo=timezone.utc)
        records = [
            make_tx("dec", when=datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc)),
            make_tx("jan", when=datetime(2027, 1, 1, tzinfo=timezone.utc)),
        ]
        assert [r.id for r in dv.current_period_records(records, now)] == ["dec"]


class TestBudgetProjections:
    def test_progress_ratio_and_flags(self):
        budget = make_budget("b", "food", amount=100)
        txs = [make_tx("1", 50), make_tx("2", 35), make_tx("3", 70, category_id="rent")]

        progress = dv.budget_progress(budget, txs)

        assert progress.spent == Decimal("85")
        assert progress.ratio == pytest.approx(0.85)
        assert progress.is_near_limit is True
        assert progress.is_over_budget is False
        assert progress.remaining == Decimal("15")

    def test_spend_outside_window_is_ignored(self):
        budget = make_budget("b", "food", amount=100)
        txs = [make_tx("old", 80, when=MARCH_1 - timedelta(days=3))]
        assert dv.budget_progress(budget, txs).spent == Decimal("0")

    def test_over_budget(self):
        progress = dv.budget_progress(make_budget("b", amount=20), [make_tx("1", 25)])
        assert progress.is_over_budget is True
        assert progress.is_near_limit is False
        assert progress.ratio == pytest.approx(1.25)

    def test_zero_amount_budget(self):
        budget = make_budget("b", amount=0)
        assert dv.budget_progress(budget, []).ratio == 0.0
        assert math.isinf(dv.budget_progress(budget, [make_tx("1", 1)]).ratio)

    def test_summary_over_current_active_budgets(self):
        budgets = [
            make_budget("food", "food", amount=100),
            make_budget("fuel", "fuel", amount=50),
            make_budget("inactive", "rent", amount=900, is_active=False),
        ]
        txs = [make_tx("1", 90, category_id="food"), make_tx("2", 60, category_id="fuel")]

        summary = dv.budget_summary(dv.all_budget_progress(budgets, txs, T0))

        assert summary.active_budgets == 2
        assert summary.total_budget == Decimal("150")
        assert summary.total_spent == Decimal("150")
        assert summary.over_budget_count == 1
        assert summary.near_limit_count == 1
        assert summary.spent_percentage == pytest.approx(100.0)

    def test_empty_summary(self):
        summary = dv.budget_summary([])
        assert summary.active_budgets == 0
        assert summary.spent_percentage == 0.0


class TestGoalProjections:
    goals = [
        make_goal("done", target=100, current=100, is_completed=True),
        make_goal(
            "overdue", target=100, current=10,
            target_date=datetime(2026, 3, 1, tzinfo=timezone.utc), priority=5,
        ),
        make_goal("behind", target=1000, current=0, priority=4),
        make_goal(
            "ahead", target=100, current=90,
            target_date=datetime(2026, 11, 1, tzinfo=timezone.utc), priority=4,
        ),
        make_goal("paused", is_active=False, priority=5),
    ]

    def test_statistics(self):
        stats = dv.goals_statistics(self.goals, T0)

        assert stats.total_goals == 5
        assert stats.completed_goals == 1
        assert stats.active_goals == 3
        assert stats.overdue_goals == 1
        assert stats.on_track_goals == 1
        assert stats.completion_rate == pytest.approx(20.0)
        assert stats.total_target_amount == Decimal("2300")

    def test_statistics_empty(self):
        stats = dv.goals_statistics([], T0)
        assert stats.total_goals == 0
        assert stats.average_progress == 0.0
        assert stats.completion_rate == 0.0

    def test_priority_goals(self):
        assert [g.id for g in dv.priority_goals(self.goals)] == ["overdue", "ahead", "behind"]
        assert [g.id for g in dv.priority_goals(self.goals, limit=1)] == ["overdue"]

    def test_goals_requiring_attention(self):
        assert [g.id for g in dv.goals_requiring_attention(self.goals, T0)] == ["overdue", "behind"]

    def test_recommended_monthly_savings_covers_open_goals(self):
        goals = [
            make_goal("house", target=1200),
            make_goal(
                "late", target=100, current=40,
                target_date=datetime(2026, 3, 1, tzinfo=timezone.utc),
            ),
            make_goal("done", target=500, current=500, is_completed=True),
            make_goal("paused", target=900, is_active=False),
        ]

        assert dv.recommended_monthly_savings(goals, T0) == Decimal("180")
        assert dv.recommended_monthly_savings([], T0) == Decimal("0")


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


class TestRecommendedBudget:
    history = [
        make_tx("feb-1", 30, when=_utc(2026, 2, 10)),
        make_tx("feb-2", 20, when=_utc(2026, 2, 20)),
        make_tx("feb-pay", 300, when=_utc(2026, 2, 25), entry_type=EntryType.INCOME),
        make_tx("jan", 100, when=_utc(2026, 1, 5)),
        make_tx("jan-rent", 999, when=_utc(2026, 1, 5), category_id="rent"),
        make_tx("march", 500, when=T0),
        make_tx("nov", 700, when=_utc(2025, 11, 15)),
    ]

    def test_averages_months_with_spending(self):
        amount = dv.recommended_budget_amount(self.history, "food", BudgetPeriod.MONTHLY, T0)
        assert amount == Decimal("75")

    @pytest.mark.parametrize(
        ("period", "expected"),
        [
            (BudgetPeriod.WEEKLY, Decimal("18.75")),
            (BudgetPeriod.QUARTERLY, Decimal("225")),
            (BudgetPeriod.YEARLY, Decimal("900")),
        ],
    )
    def test_scales_to_period(self, period: BudgetPeriod, expected: Decimal):
        assert dv.recommended_budget_amount(self.history, "food", period, T0) == expected

    def test_lookback_crosses_year_boundary(self):
        amount = dv.recommended_budget_amount(
            self.history, "food", BudgetPeriod.MONTHLY, _utc(2026, 1, 20),
        )
        assert amount == Decimal("700")

    def test_no_history_is_zero(self):
        assert dv.recommended_budget_amount(
            self.history, "travel", BudgetPeriod.MONTHLY, T0,
        ) == Decimal("0")


def _coordinators(
    logger: StructuredLogger, clock: ManualClock,
) -> tuple[BudgetSyncCoordinator, TransactionSyncCoordinator, FakeRemote[Budget], FakeRemote[Transaction]]:
    budget_remote: FakeRemote[Budget] = FakeRemote([make_budget("b", "food", amount=100)])
    tx_remote: FakeRemote[Transaction] = FakeRemote([make_tx("t1", 30)])
    budgets = BudgetSyncCoordinator(
        owner_id=OWNER, remote=budget_remote, local=FakeLocal(),
        cache=CacheStore(name="budgets", logger=logger, clock=clock),
        logger=logger, load_on_init=False,
    )
    transactions = TransactionSyncCoordinator(
        owner_id=OWNER, remote=tx_remote, local=FakeLocal(),
        cache=CacheStore(name="transactions", logger=logger, clock=clock),
        logger=logger, load_on_init=False,
    )
    return budgets, transactions, budget_remote, tx_remote


class TestDerivedView:
    @pytest.mark.asyncio
    async def test_loading_until_both_inputs_have_data(self, logger, clock):
        budgets, transactions, _, _ = _coordinators(logger, clock)
        view = dv.budget_summary_view(budgets, transactions, logger, clock=clock)

        assert isinstance(view.value, Loading)
        await budgets.refresh()
        assert isinstance(view.value, Loading)
        await transactions.refresh()

        value = view.value
        assert isinstance(value, Ready)
        assert value.value.total_spent == Decimal("30")

    @pytest.mark.asyncio
    async def test_error_input_propagates(self, logger, clock):
        budgets, transactions, budget_remote, _ = _coordinators(logger, clock)
        failure = RemoteUnavailable("down")
        budget_remote.fail_with = failure
        view = dv.budget_progress_view(budgets, transactions, logger, clock=clock)

        await budgets.refresh()
        await transactions.refresh()

        value = view.value
        assert isinstance(value, Error)
        assert value.cause is failure

    @pytest.mark.asyncio
    async def test_subscribers_see_recomputed_values(self, logger, clock):
        _, transactions, _, _ = _coordinators(logger, clock)
        view = dv.current_month_totals_view(transactions, logger, clock=clock)
        seen: list[Any] = []
        view.subscribe(seen.append)

        await transactions.refresh()
        await transactions.add(make_tx("t2", 20))

        ready = [s for s in seen if isinstance(s, Ready)]
        assert [r.value.spent for r in ready] == [Decimal("30"), Decimal("50")]

    @pytest.mark.asyncio
    async def test_value_follows_the_clock_across_months(self, logger, clock):
        _, transactions, _, _ = _coordinators(logger, clock)
        view = dv.current_month_transactions_view(transactions, logger, clock=clock)
        await transactions.refresh()
        assert len(view.value.value) == 1

        clock.advance(days=30)

        assert view.value.value == []

    @pytest.mark.asyncio
    async def test_close_stops_notifications(self, logger, clock):
        _, transactions, _, _ = _coordinators(logger, clock)
        view = dv.recent_transactions_view(transactions, logger, limit=5, clock=clock)
        seen: list[Any] = []
        view.subscribe(seen.append)

        view.close()
        await transactions.refresh()

        assert seen == []

    def test_requires_a_source(self, logger):
        with pytest.raises(ValueError):
            dv.DerivedView([], lambda now: None, logger)

    @pytest.mark.asyncio
    async def test_goal_views(self, logger, clock):
        from finsync.services.goal_sync import GoalSyncCoordinator

        goal_remote: FakeRemote[Goal] = FakeRemote([make_goal("g", priority=5)])
        goals = GoalSyncCoordinator(
            owner_id=OWNER, remote=goal_remote, local=FakeLocal(),
            cache=CacheStore(name="goals", logger=logger, clock=clock),
            logger=logger, load_on_init=False, clock=clock,
        )
        stats_view = dv.goals_statistics_view(goals, logger, clock=clock)
        priority_view = dv.priority_goals_view(goals, logger, clock=clock)
        attention_view = dv.goals_attention_view(goals, logger, clock=clock)

        await goals.refresh()

        assert stats_view.value.value.total_goals == 1
        assert [g.id for g in priority_view.value.value] == ["g"]
        assert [g.id for g in attention_view.value.value] == ["g"]

    @pytest.mark.asyncio
    async def test_recommendation_views(self, logger, clock):
        from finsync.services.goal_sync import GoalSyncCoordinator

        _, transactions, _, tx_remote = _coordinators(logger, clock)
        tx_remote.rows.append(make_tx("feb", 40, when=datetime(2026, 2, 10, tzinfo=timezone.utc)))
        goals = GoalSyncCoordinator(
            owner_id=OWNER, remote=FakeRemote([make_goal("g", target=1200)]), local=FakeLocal(),
            cache=CacheStore(name="goals", logger=logger, clock=clock),
            logger=logger, load_on_init=False, clock=clock,
        )
        budget_view = dv.recommended_budget_view(transactions, "food", logger, clock=clock)
        savings_view = dv.recommended_savings_view(goals, logger, clock=clock)

        await transactions.refresh()
        await goals.refresh()

        assert budget_view.value.value == Decimal("40")
        assert savings_view.value.value == Decimal("120")

        clock.advance(days=30)

        assert budget_view.value.value == Decimal("35")

"""
FinSync Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the local SQLite schema, loads every record collection for one owner and
logs a dashboard summary.  Every subsystem is wired here, with no
module-level globals.

Usage::

    python main.py <owner-id>
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from finsync.config import get_config
from finsync.database import DatabaseManager
from finsync.logger import StructuredLogger, get_logger
from finsync.models.sync_models import Ready
from finsync.schema import initialize_schema
from finsync.services import (
    create_cache_stores,
    create_sync_services,
    shutdown_sync_services,
    wait_for_sync_services,
)
from finsync.services.derived_views import (
    budget_summary_view,
    current_month_totals_view,
    goals_statistics_view,
    recent_transactions_view,
    recommended_savings_view,
)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load an owner's finance records and log a summary.",
    )
    parser.add_argument("owner_id", help="Owner (user) id whose records are loaded.")
    return parser.parse_args(argv)


async def run(owner_id: str) -> None:
    """Wire dependencies, load every kind for *owner_id* and log a summary."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting FinSync for owner %s...", owner_id)

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Database Manager (Supabase optional, SQLite always)
    # ------------------------------------------------------------------
    db = await DatabaseManager.open(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=Path(config.SQLITE_PATH),
        logger=StructuredLogger(name="database"),
    )
    if not db.is_online:
        logger.warning("Remote store unavailable; serving cached and local records only.")

    try:
        # --------------------------------------------------------------
        # 3. SQLite schema (idempotent)
        # --------------------------------------------------------------
        initialize_schema(db.sqlite, StructuredLogger(name="schema"))

        # --------------------------------------------------------------
        # 4. Session caches and per-owner coordinators
        # --------------------------------------------------------------
        caches = create_cache_stores(config)
        services = create_sync_services(db, config, owner_id, caches)
        await wait_for_sync_services(services)

        # --------------------------------------------------------------
        # 5. Dashboard summary
        # --------------------------------------------------------------
        view_logger = get_logger("views")
        recent = recent_transactions_view(
            services["transactions"], view_logger, limit=config.RECENT_LIMIT,
        ).value
        totals = current_month_totals_view(services["transactions"], view_logger).value
        budgets = budget_summary_view(
            services["budgets"], services["transactions"], view_logger,
        ).value
        goals = goals_statistics_view(services["goals"], view_logger).value
        savings = recommended_savings_view(services["goals"], view_logger).value

        if isinstance(recent, Ready):
            logger.info("Recent transactions: %d", len(recent.value))
        if isinstance(totals, Ready):
            logger.info(
                "This month: spent %s, income %s, net %s",
                totals.value.spent, totals.value.income, totals.value.net,
            )
        if isinstance(budgets, Ready):
            logger.info(
                "Budgets: %d active, %.1f%% spent, %d over, %d near limit",
                budgets.value.active_budgets,
                budgets.value.spent_percentage,
                budgets.value.over_budget_count,
                budgets.value.near_limit_count,
            )
        if isinstance(goals, Ready):
            logger.info(
                "Goals: %d total, %d completed, %.1f%% average progress",
                goals.value.total_goals,
                goals.value.completed_goals,
                goals.value.average_progress,
            )
        if isinstance(savings, Ready):
            logger.info("Recommended monthly savings: %s", savings.value)
        for name, cache in caches.items():
            stats = cache.stats()
            logger.info(
                "Cache %s: %d/%d entries, hit rate %.2f",
                name, stats.size, stats.capacity, stats.hit_rate,
            )

        await shutdown_sync_services(services)
    finally:
        db.close()
        logger.info("FinSync shut down.")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Application entry point."""
    args = _parse_args(argv)
    try:
        asyncio.run(run(args.owner_id))
    except Exception:
        get_logger("main").critical("Fatal error during startup.", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

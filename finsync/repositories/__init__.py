"""
Repository Layer Package.

Provides data-access abstractions over Supabase (authoritative remote
store) and SQLite (durable local snapshots).  Coordinators depend only on
the ``RemotePersistence`` / ``LocalDurableStore`` protocols; these classes
are the production implementations.

Usage:
    from finsync.repositories import TransactionRepository, SnapshotRepository
"""

from finsync.repositories.base_repository import RemoteRepository
from finsync.repositories.budget_repository import BudgetRepository
from finsync.repositories.category_repository import CategoryRepository
from finsync.repositories.goal_repository import GoalRepository
from finsync.repositories.protocols import LocalDurableStore, RemotePersistence
from finsync.repositories.snapshot_repository import SnapshotRepository
from finsync.repositories.transaction_repository import TransactionRepository

__all__ = [
    "BudgetRepository",
    "CategoryRepository",
    "GoalRepository",
    "LocalDurableStore",
    "RemotePersistence",
    "RemoteRepository",
    "SnapshotRepository",
    "TransactionRepository",
]

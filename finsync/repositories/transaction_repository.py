"""
Transaction Repository.

Remote access to the ``expenses`` table, which holds both expense and
income entries.
"""

from __future__ import annotations

from finsync.models.transaction import Transaction
from finsync.repositories.base_repository import RemoteRepository


class TransactionRepository(RemoteRepository[Transaction]):
    """Data access layer for Transaction entities."""

    TABLE = "expenses"
    MODEL = Transaction
    ORDER_COLUMN = "transaction_date"

"""Transaction coordinator: the loading state machine plus spend queries."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional

from finsync.models.enums import RecordKind
from finsync.models.transaction import Transaction
from finsync.services.query_engine import (
    RecordFilter,
    aggregate_by_category,
    filter_transactions,
)
from finsync.services.sync_coordinator import RecordSyncCoordinator


class TransactionSyncCoordinator(RecordSyncCoordinator[Transaction]):
    """Coordinator for the ``transactions`` kind, ordered by transaction date."""

    KIND: ClassVar[RecordKind] = RecordKind.TRANSACTIONS

    def filter(self, criteria: RecordFilter) -> list[Transaction]:
        """Apply *criteria* to the last-known-good collection (newest first)."""
        return filter_transactions(self.last_known_good, criteria)

    def category_spending(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[str, Decimal]:
        return aggregate_by_category(self.last_known_good, start, end)

"""
Transaction Model.

A single income or expense entry.  The collection is ordered by
``transaction_date`` and is the input to every spending aggregation.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from finsync.models.enums import EntryType, PaymentMethod
from finsync.models.record import Record


class Transaction(Record):
    """Represents a money movement owned by one user."""

    category_id: str
    amount: Decimal = Field(ge=0)
    description: str = ""
    payment_method: PaymentMethod = PaymentMethod.CASH
    transaction_date: datetime
    created_at: datetime
    receipt_url: Optional[str] = None
    entry_type: EntryType = Field(default=EntryType.EXPENSE, alias="type")
    notes: Optional[str] = None

    @property
    def event_date(self) -> datetime:
        return self.transaction_date

    @property
    def is_expense(self) -> bool:
        return self.entry_type == EntryType.EXPENSE

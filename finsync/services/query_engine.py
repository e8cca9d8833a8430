"""
Query Engine — pure functions over in-memory record collections.

Nothing here performs I/O or keeps state.  Every coordinator, the
pagination index and the derived views go through these helpers so the
collection invariants (unique ids, most-recent-first order) are enforced
in exactly one place.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from finsync.models.enums import EntryType
from finsync.models.record import RecordT
from finsync.models.transaction import Transaction
from finsync.utils.dates import ensure_utc

__all__ = [
    "RecordFilter",
    "aggregate_by_category",
    "dedupe_and_sort",
    "filter_transactions",
]


def dedupe_and_sort(records: Iterable[RecordT]) -> list[RecordT]:
    """Drop repeated ids (first occurrence wins) and sort by ``event_date`` desc.

    ``sorted`` is stable, so records sharing an ``event_date`` keep their
    input order and a second application returns the same list.
    """
    seen: set[str] = set()
    unique: list[RecordT] = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return sorted(unique, key=lambda r: r.event_date, reverse=True)


class RecordFilter(BaseModel):
    """Independent, simultaneously applied transaction constraints.

    Every field is optional; ``None`` imposes no restriction.  Date and
    amount bounds are inclusive.
    """

    model_config = ConfigDict(frozen=True)

    category_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    entry_type: Optional[EntryType] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    def matches(self, tx: Transaction) -> bool:
        if self.category_id is not None and tx.category_id != self.category_id:
            return False
        if self.start_date is not None and tx.transaction_date < self.start_date:
            return False
        if self.end_date is not None and tx.transaction_date > self.end_date:
            return False
        if self.entry_type is not None and tx.entry_type != self.entry_type:
            return False
        if self.min_amount is not None and tx.amount < self.min_amount:
            return False
        if self.max_amount is not None and tx.amount > self.max_amount:
            return False
        return True


def filter_transactions(
    records: Iterable[Transaction],
    criteria: RecordFilter,
) -> list[Transaction]:
    """Return the records matching *criteria*, in input order.

    An inverted date range (``end_date < start_date``) simply matches
    nothing.
    """
    return [tx for tx in records if criteria.matches(tx)]


def aggregate_by_category(
    records: Sequence[Transaction],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> dict[str, Decimal]:
    """Sum expense amounts per ``category_id``.

    Income entries are excluded.  ``start``/``end`` are inclusive bounds on
    ``transaction_date``.  Categories without a matching expense are absent
    from the result rather than mapped to zero.
    """
    criteria = RecordFilter(start_date=start, end_date=end, entry_type=EntryType.EXPENSE)
    totals: dict[str, Decimal] = {}
    for tx in filter_transactions(records, criteria):
        totals[tx.category_id] = totals.get(tx.category_id, Decimal("0")) + tx.amount
    return totals

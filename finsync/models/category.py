"""
Category Model.

Categories group transactions and budgets.  Built-in defaults have no
owner; user-defined categories carry the owner's id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from finsync.models.enums import EntryType
from finsync.models.record import Record


class Category(Record):
    """Represents a transaction category."""

    owner_id: Optional[str] = Field(default=None, alias="user_id")
    name: str
    icon: str = ""
    color: int = 0
    is_default: bool = False
    created_at: datetime
    entry_type: EntryType = Field(default=EntryType.EXPENSE, alias="type")
    is_active: bool = True

    @property
    def event_date(self) -> datetime:
        return self.created_at

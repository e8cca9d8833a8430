"""Category coordinator.

The remote collection for an owner includes the shared default
categories (``owner_id`` is ``None`` on those rows).
"""

from __future__ import annotations

from typing import ClassVar, Optional

from finsync.models.category import Category
from finsync.models.enums import EntryType, RecordKind
from finsync.services.sync_coordinator import RecordSyncCoordinator


class CategorySyncCoordinator(RecordSyncCoordinator[Category]):
    KIND: ClassVar[RecordKind] = RecordKind.CATEGORIES

    def by_type(self, entry_type: EntryType) -> list[Category]:
        return [
            c for c in self.last_known_good
            if c.is_active and c.entry_type == entry_type
        ]

    def search(self, query: str) -> list[Category]:
        """Active categories whose name contains *query*, case-insensitively."""
        needle = query.strip().casefold()
        return [
            c for c in self.last_known_good
            if c.is_active and needle in c.name.casefold()
        ]

    def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        target = name.strip().casefold()
        return any(
            c.name.strip().casefold() == target
            for c in self.last_known_good
            if c.id != exclude_id
        )

"""
Category Repository.

Remote access to the ``categories`` table.  A user's collection is their
own categories plus the shared built-in defaults, which have no owner.
"""

from __future__ import annotations

from finsync.models.category import Category
from finsync.repositories.base_repository import RemoteRepository
from finsync.utils.string_helpers import quote_postgrest_value


class CategoryRepository(RemoteRepository[Category]):
    """Data access layer for Category entities."""

    TABLE = "categories"
    MODEL = Category

    async def fetch_all(self, owner_id: str) -> list[Category]:
        """Fetch the owner's categories together with the built-in defaults."""
        owner = quote_postgrest_value(owner_id)
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .or_(f"{self.OWNER_COLUMN}.eq.{owner},is_default.eq.true")
                .order(self.ORDER_COLUMN, desc=True)
                .execute()
            )
        except Exception as exc:
            raise self._classify(exc, f"fetch_all ({self.TABLE})") from exc
        return self._parse_rows(response.data or [])

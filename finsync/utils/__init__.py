"""Shared utility functions for the FinSync package.

Convenience re-exports so consumers can import directly from
``finsync.utils`` (e.g. ``from finsync.utils import normalize_keys``).
"""

from finsync.utils.dates import ensure_utc, month_bounds, shift_month, utc_now
from finsync.utils.string_helpers import (
    JsonValue,
    normalize_keys,
    quote_postgrest_value,
    to_snake_case,
)

__all__ = [
    "JsonValue",
    "ensure_utc",
    "month_bounds",
    "normalize_keys",
    "quote_postgrest_value",
    "shift_month",
    "to_snake_case",
    "utc_now",
]

"""
String Helpers — Centralized Naming Convention Converter.

Single source of truth for key normalization between the remote store and
the pydantic models.  Legacy rows written by the mobile client use
camelCase keys (``userId``, ``transactionDate``); the models use
snake_case.  All conversion flows through here.
"""

from __future__ import annotations

import re
from typing import Union, overload

__all__ = [
    "JsonValue",
    "normalize_keys",
    "quote_postgrest_value",
    "to_snake_case",
]

# ---------------------------------------------------------------------------
# Recursive JSON value type, no ``Any``
# ---------------------------------------------------------------------------

JsonValue = Union[
    str,
    int,
    float,
    bool,
    None,
    dict[str, "JsonValue"],
    list["JsonValue"],
]

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

# "HTTPUrl" -> "HTTP_Url"
_RE_UPPER_RUN = re.compile(r"([A-Z]+)([A-Z][a-z])")

# "userId" -> "user_Id"
_RE_CAMEL_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")

_RE_MULTI_UNDERSCORE = re.compile(r"_+")


# ---------------------------------------------------------------------------
# Case-conversion primitives
# ---------------------------------------------------------------------------


def to_snake_case(name: str) -> str:
    """Convert a camelCase, PascalCase, or mixed-case string to snake_case.

    Handles the key shapes found in stored finance records::

        userId              -> user_id
        transactionDate     -> transaction_date
        categoryId          -> category_id
        isDefault           -> is_default
        enableNotifications -> enable_notifications
        receiptURL          -> receipt_url
        already_snake       -> already_snake

    Known limitation: an all-uppercase acronym followed directly by a
    lowercase letter (``URLpath``) splits incorrectly.  No stored key
    uses that shape.
    """
    s1 = _RE_UPPER_RUN.sub(r"\1_\2", name)
    s2 = _RE_CAMEL_BOUNDARY.sub(r"\1_\2", s1)
    s3 = _RE_MULTI_UNDERSCORE.sub("_", s2)
    return s3.lower()


# ---------------------------------------------------------------------------
# Recursive key-normalisation helpers
# ---------------------------------------------------------------------------


@overload
def normalize_keys(data: dict[str, JsonValue]) -> dict[str, JsonValue]: ...


@overload
def normalize_keys(data: list[JsonValue]) -> list[JsonValue]: ...


@overload
def normalize_keys(data: JsonValue) -> JsonValue: ...


def normalize_keys(
    data: Union[dict[str, JsonValue], list[JsonValue], JsonValue],
) -> Union[dict[str, JsonValue], list[JsonValue], JsonValue]:
    """
    Recursively convert all dictionary keys to snake_case.

    Used at the repository boundary on every row read from Supabase or
    from the local snapshot table, before model validation.
    """
    if isinstance(data, dict):
        return {to_snake_case(k): normalize_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [normalize_keys(item) for item in data]
    return data


# Inside a double-quoted PostgREST filter value only backslash and the
# double quote itself need escaping; commas, periods and parentheses are
# then taken literally.
_POSTGREST_QUOTE_ESCAPES: dict[int, str] = str.maketrans({"\\": "\\\\", "\"": "\\\""})


def quote_postgrest_value(value: str) -> str:
    """Quote *value* for interpolation into a PostgREST ``or_`` filter.

    Parameters
    ----------
    value:
        The raw identifier to embed in a filter expression.

    Returns
    -------
    str
        *value* wrapped in double quotes with ``\\`` and ``"`` escaped, so
        reserved characters (``,.:()``) cannot change the filter's meaning.
    """
    return f'"{value.translate(_POSTGREST_QUOTE_ESCAPES)}"'

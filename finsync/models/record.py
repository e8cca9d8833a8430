"""
Record Base Model.

Every synchronised record is an immutable pydantic value object with a
unique ``id`` inside its owner's collection.  "Mutation" produces a new
instance via ``model_copy(update=...)`` that keeps the same ``id``.
"""

from __future__ import annotations

from datetime import datetime
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finsync.utils.dates import ensure_utc

__all__ = ["Record", "RecordT"]


class Record(BaseModel):
    """Abstract base for Transaction, Budget, Category and Goal.

    ``owner_id`` is stored remotely as ``user_id``; both names are
    accepted on input and ``by_alias`` dumps use the column name.
    Naive datetimes are interpreted as UTC so records from different
    sources always compare.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    owner_id: str = Field(alias="user_id")

    @field_validator("*", mode="after")
    @classmethod
    def _normalise_datetimes(cls, v: object) -> object:
        if isinstance(v, datetime):
            return ensure_utc(v)
        return v

    @property
    def event_date(self) -> datetime:
        """Date used to order the collection, most recent first."""
        raise NotImplementedError


RecordT = TypeVar("RecordT", bound=Record)

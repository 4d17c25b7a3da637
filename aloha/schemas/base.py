"""
Base schema pieces shared by the response models.

UTCDatetime serializes datetimes with a Z suffix. Aware values are
converted to UTC first; naive values (SQLite in tests) are taken as UTC.
"""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer


def _to_utc_string(dt: datetime) -> str:
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


# Usage: created_at: UTCDatetime instead of created_at: datetime
UTCDatetime = Annotated[
    datetime,
    PlainSerializer(_to_utc_string, return_type=str),
]


class PageResponse(BaseModel):
    """Pagination envelope fields shared by list responses."""

    total: int
    page: int
    size: int


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str = Field(..., description="Human-readable message")

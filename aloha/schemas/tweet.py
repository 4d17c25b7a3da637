"""Pydantic schemas for Tweet endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from aloha.models.tweet import TweetBase
from aloha.schemas.base import PageResponse, UTCDatetime


class TweetCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=280)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class TweetUpdate(TweetCreate):
    pass


class TweetResponse(TweetBase):
    id: UUID
    user_id: UUID
    created_at: UTCDatetime
    updated_at: UTCDatetime

    model_config = {"from_attributes": True}


class TweetListResponse(PageResponse):
    items: list[TweetResponse]

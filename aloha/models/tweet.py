"""
SQLModel-based Tweet model

Short text posts owned by exactly one user. Deleting the user deletes their
tweets. updated_at is refreshed on every UPDATE: by the ORM here, and by the
tweets_set_updated_at trigger created in the initial migration.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKeyConstraint, Index, Text, func
from sqlmodel import Field, SQLModel

from aloha.models.user import utc_now


class TweetBase(SQLModel):
    """Base model with shared public fields for Tweets."""

    content: str = Field(sa_type=Text)  # type: ignore[call-overload]


class Tweets(TweetBase, table=True):
    """Database table for tweets."""

    __tablename__ = "tweets"

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            ondelete="CASCADE",
            name="fk_tweets_user_id",
        ),
        Index("ix_tweets_user_id", "user_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"server_default": func.now()},
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"server_default": func.now(), "onupdate": utc_now},
    )

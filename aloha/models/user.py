"""
SQLModel-based User models with inheritance for security

UserBase (shared public fields)
    ├─> Users (database table, adds the password hash and group reference)
    └─> UserResponse (API schema, defined in aloha/schemas)
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKeyConstraint, Index, func
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(UTC)


class UserBase(SQLModel):
    """
    Base model with shared public fields for Users.

    These fields are safe to expose via the API.
    """

    username: str = Field(max_length=255)


class Users(UserBase, table=True):
    """
    Database table for users.

    Internal/sensitive fields (should NOT be exposed via public API):
    - password_hash: Argon2 (or legacy bcrypt) encoded hash

    A user belongs to zero or one group. Deleting the group clears
    user_group_id; it never deletes the user.
    """

    __tablename__ = "users"

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_group_id"],
            ["user_groups.id"],
            ondelete="SET NULL",
            name="fk_users_user_group_id",
        ),
        Index("uq_users_username", "username", unique=True),
        Index("ix_users_user_group_id", "user_group_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Authentication (highly sensitive - never expose)
    password_hash: str = Field(max_length=255)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"server_default": func.now()},
    )

    user_group_id: UUID | None = Field(default=None)

    # Note: Relationships are intentionally omitted.
    # Foreign keys are sufficient for queries and avoid accidental eager loading.

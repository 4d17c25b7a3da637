"""
SQLModel-based Permission models

This module defines the permission graph tables:
- UserGroups: Groups users can be assigned to (at most one per user)
- Permissions: Individual named permissions
- GroupPermissions: Junction table linking groups to permissions
- UserPermissions: Junction table linking users to individual permissions

Cascade rules are declared on the foreign keys as the schema contract. The
Permission Graph service still performs every cascade explicitly inside one
transaction, so the invariants hold on stores without native cascades.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKeyConstraint, Index, Text, func
from sqlmodel import Field, SQLModel

from aloha.models.user import utc_now

# ===== UserGroups =====


class UserGroupBase(SQLModel):
    """
    Base model with shared public fields for UserGroups.
    """

    group_name: str = Field(max_length=255)


class UserGroups(UserGroupBase, table=True):
    """
    Database table for user groups.

    Groups are collections of permissions that apply to their members.
    """

    __tablename__ = "user_groups"

    __table_args__ = (Index("uq_user_groups_group_name", "group_name", unique=True),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"server_default": func.now()},
    )


# ===== Permissions =====


class PermissionBase(SQLModel):
    """
    Base model with shared public fields for Permissions.

    The name is immutable once created; only the description may change.
    """

    name: str = Field(max_length=255)
    description: str | None = Field(default=None, sa_type=Text)  # type: ignore[call-overload]


class Permissions(PermissionBase, table=True):
    """
    Database table for individual permissions.
    """

    __tablename__ = "permissions"

    __table_args__ = (Index("uq_permissions_name", "name", unique=True),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"server_default": func.now()},
    )


# ===== GroupPermissions (Junction Table) =====


class GroupPermissions(SQLModel, table=True):
    """
    Database table linking groups to permissions.

    Deleting either the group or the permission deletes the assignment.
    """

    __tablename__ = "group_permissions"

    __table_args__ = (
        ForeignKeyConstraint(
            ["group_id"],
            ["user_groups.id"],
            ondelete="CASCADE",
            name="fk_group_permissions_group_id",
        ),
        ForeignKeyConstraint(
            ["permission_id"],
            ["permissions.id"],
            ondelete="CASCADE",
            name="fk_group_permissions_permission_id",
        ),
        Index("ix_group_permissions_permission_id", "permission_id"),
    )

    group_id: UUID = Field(primary_key=True)
    permission_id: UUID = Field(primary_key=True)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"server_default": func.now()},
    )


# ===== UserPermissions (Junction Table) =====


class UserPermissions(SQLModel, table=True):
    """
    Database table linking users to individual permissions.

    Direct grants, in addition to whatever the user's group provides.
    """

    __tablename__ = "user_permissions"

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            ondelete="CASCADE",
            name="fk_user_permissions_user_id",
        ),
        ForeignKeyConstraint(
            ["permission_id"],
            ["permissions.id"],
            ondelete="CASCADE",
            name="fk_user_permissions_permission_id",
        ),
        Index("ix_user_permissions_permission_id", "permission_id"),
    )

    user_id: UUID = Field(primary_key=True)
    permission_id: UUID = Field(primary_key=True)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        sa_column_kwargs={"server_default": func.now()},
    )

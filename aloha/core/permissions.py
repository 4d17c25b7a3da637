"""
Permission resolution for user authorization.

This module provides:
- Permission constants (enum) for the names the application's routes require
- Effective permission resolution (direct grants + group grants)
- Name normalisation shared with the authorization gate

The effective permission set is derived on every call from the current
permission graph; it is never stored or cached. Access decisions go through
aloha.core.gate.AuthorizationGate, which authenticates the caller first.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.models.permissions import GroupPermissions, Permissions, UserPermissions
from aloha.models.user import Users


class Permission(str, Enum):
    """
    Type-safe permission constants mapped to permissions.name.

    Seeded into the database on startup by sync_permissions().
    """

    # Tweets
    POST_TWEET = ("post_tweet", "Create tweets and edit or delete your own")
    EDIT_TWEET = ("edit_tweet", "Edit any tweet")
    DELETE_POST = ("delete_post", "Delete any tweet")

    # Administration
    USER_MANAGE = ("user_manage", "List, delete users and change their group")
    GROUP_MANAGE = ("group_manage", "Create, rename and delete groups")
    PERMISSION_MANAGE = ("permission_manage", "Manage permissions and their assignments")

    description: str

    def __new__(cls, value: str, description: str) -> "Permission":
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.description = description
        return obj


def permission_name(permission: str | Permission) -> str:
    return permission.value if isinstance(permission, Permission) else permission


async def get_user_permissions(db: AsyncSession, user_id: UUID) -> set[str]:
    """
    Resolve all effective permissions for a user.

    Combines permissions from:
    1. The user's group, if any (users.user_group_id → group_permissions)
    2. Direct user permission assignments (user_permissions)

    A permission reachable both ways appears once. A user with no group and
    no direct grants (or an unknown user) resolves to the empty set.

    Args:
        db: Database session
        user_id: User ID to resolve permissions for

    Returns:
        Set of permission names (e.g., {"post_tweet", "delete_post"})
    """
    # Query 1: Permissions from the user's group
    group_perms_query = (
        select(Permissions.name)  # type: ignore[call-overload]
        .select_from(Users)
        .join(GroupPermissions, Users.user_group_id == GroupPermissions.group_id)
        .join(Permissions, GroupPermissions.permission_id == Permissions.id)
        .where(Users.id == user_id)
    )

    # Query 2: Direct user permissions
    user_perms_query = (
        select(Permissions.name)  # type: ignore[call-overload]
        .select_from(UserPermissions)
        .join(Permissions, UserPermissions.permission_id == Permissions.id)
        .where(UserPermissions.user_id == user_id)
    )

    result = await db.execute(union(group_perms_query, user_perms_query))
    return {row[0] for row in result.fetchall()}

"""
Permission graph: permissions, groups and their assignments.

Grants are idempotent and revokes of missing assignments are no-ops. Deletes
that touch several tables run every cascade step explicitly inside one
transaction (see aloha.core.store_guard.atomic), so concurrent readers see
either the whole change or none of it, whether or not the database enforces
the declared ON DELETE rules itself.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.core.errors import ConstraintViolation, NotFound, StoreUnavailable
from aloha.core.logging import get_logger
from aloha.core.store_guard import atomic, guarded_store_call
from aloha.models.permissions import (
    GroupPermissions,
    Permissions,
    UserGroups,
    UserPermissions,
)
from aloha.models.tweet import Tweets
from aloha.models.user import Users
from aloha.services.sessions import SessionManager

logger = get_logger(__name__)


async def _require(db: AsyncSession, model: type, ident: UUID, label: str):  # type: ignore[no-untyped-def]
    async with guarded_store_call("database"):
        row = await db.get(model, ident)
    if row is None:
        raise NotFound(f"{label} not found")
    return row


async def _paginate(
    db: AsyncSession, model: type, order_by, offset: int, limit: int  # type: ignore[no-untyped-def]
) -> tuple[Sequence, int]:  # type: ignore[type-arg]
    async with guarded_store_call("database"):
        total = (await db.execute(select(func.count()).select_from(model))).scalar() or 0
        result = await db.execute(select(model).order_by(order_by).offset(offset).limit(limit))
    return result.scalars().all(), total


# ===== Permissions =====


async def create_permission(
    db: AsyncSession, name: str, description: str | None = None
) -> Permissions:
    """
    Create a permission.

    Raises:
        ConstraintViolation: A permission with this name exists
    """
    async with guarded_store_call("database"):
        existing = await db.execute(select(Permissions.id).where(Permissions.name == name))
    if existing.scalar_one_or_none() is not None:
        raise ConstraintViolation(f"Permission '{name}' already exists")

    permission = Permissions(name=name, description=description)
    async with atomic(db):
        db.add(permission)

    logger.info("permission_created", permission_id=str(permission.id), name=name)
    return permission


async def get_permission(db: AsyncSession, permission_id: UUID) -> Permissions:
    return await _require(db, Permissions, permission_id, "Permission")


async def list_permissions(
    db: AsyncSession, offset: int = 0, limit: int = 10
) -> tuple[Sequence[Permissions], int]:
    return await _paginate(db, Permissions, Permissions.name, offset, limit)


async def update_permission_description(
    db: AsyncSession, permission_id: UUID, description: str | None
) -> Permissions:
    """Change a permission's description. The name never changes."""
    permission = await get_permission(db, permission_id)
    async with atomic(db):
        permission.description = description
    return permission


async def delete_permission(db: AsyncSession, permission_id: UUID) -> None:
    """
    Delete a permission together with every user and group assignment of it.

    Raises:
        NotFound: Unknown permission
    """
    permission = await get_permission(db, permission_id)

    async with atomic(db):
        await db.execute(delete(UserPermissions).where(UserPermissions.permission_id == permission_id))
        await db.execute(
            delete(GroupPermissions).where(GroupPermissions.permission_id == permission_id)
        )
        await db.delete(permission)

    logger.info("permission_deleted", permission_id=str(permission_id), name=permission.name)


# ===== Groups =====


async def create_group(db: AsyncSession, group_name: str) -> UserGroups:
    """
    Create a group.

    Raises:
        ConstraintViolation: A group with this name exists
    """
    async with guarded_store_call("database"):
        existing = await db.execute(select(UserGroups.id).where(UserGroups.group_name == group_name))
    if existing.scalar_one_or_none() is not None:
        raise ConstraintViolation(f"Group '{group_name}' already exists")

    group = UserGroups(group_name=group_name)
    async with atomic(db):
        db.add(group)

    logger.info("group_created", group_id=str(group.id), group_name=group_name)
    return group


async def get_group(db: AsyncSession, group_id: UUID) -> UserGroups:
    return await _require(db, UserGroups, group_id, "Group")


async def list_groups(
    db: AsyncSession, offset: int = 0, limit: int = 10
) -> tuple[Sequence[UserGroups], int]:
    return await _paginate(db, UserGroups, UserGroups.group_name, offset, limit)


async def rename_group(db: AsyncSession, group_id: UUID, group_name: str) -> UserGroups:
    """
    Raises:
        NotFound: Unknown group
        ConstraintViolation: Another group already uses the name
    """
    group = await get_group(db, group_id)
    async with atomic(db):
        group.group_name = group_name
    return group


async def delete_group(db: AsyncSession, group_id: UUID) -> None:
    """
    Delete a group.

    In one transaction: members lose their group reference (the users stay),
    the group's permission assignments are deleted, then the group.

    Raises:
        NotFound: Unknown group
    """
    group = await get_group(db, group_id)

    async with atomic(db):
        members = await db.execute(
            update(Users).where(Users.user_group_id == group_id).values(user_group_id=None)
        )
        await db.execute(delete(GroupPermissions).where(GroupPermissions.group_id == group_id))
        await db.delete(group)

    logger.info("group_deleted", group_id=str(group_id), members_cleared=members.rowcount)


# ===== Users =====


async def get_user(db: AsyncSession, user_id: UUID) -> Users:
    return await _require(db, Users, user_id, "User")


async def list_users(
    db: AsyncSession, offset: int = 0, limit: int = 10
) -> tuple[Sequence[Users], int]:
    return await _paginate(db, Users, Users.username, offset, limit)


async def set_user_group(db: AsyncSession, user_id: UUID, group_id: UUID | None) -> Users:
    """
    Put a user in a group, or take them out of their group with None.

    Raises:
        NotFound: Unknown user or group
    """
    user = await get_user(db, user_id)
    if group_id is not None:
        await get_group(db, group_id)

    async with atomic(db):
        user.user_group_id = group_id

    logger.info(
        "user_group_changed",
        user_id=str(user_id),
        group_id=str(group_id) if group_id else None,
    )
    return user


async def delete_user(db: AsyncSession, sessions: SessionManager, user_id: UUID) -> None:
    """
    Delete a user with their direct grants and tweets, and end their sessions.

    Sessions are revoked before the commit, so a session store outage aborts
    the whole delete. They are revoked once more after the commit to catch a
    login that raced with the delete; a failure at that point is only logged,
    since the gate refuses sessions of missing users anyway.

    Raises:
        NotFound: Unknown user
        StoreUnavailable: Database or session store unreachable
    """
    user = await get_user(db, user_id)

    async with atomic(db):
        await db.execute(delete(UserPermissions).where(UserPermissions.user_id == user_id))
        await db.execute(delete(Tweets).where(Tweets.user_id == user_id))
        await db.delete(user)
        await db.flush()
        await sessions.destroy_all_sessions_for(user_id)

    try:
        await sessions.destroy_all_sessions_for(user_id)
    except StoreUnavailable:
        logger.warning("post_delete_session_cleanup_failed", user_id=str(user_id))

    logger.info("user_deleted", user_id=str(user_id))


# ===== Assignments =====


async def grant_to_user(db: AsyncSession, user_id: UUID, permission_id: UUID) -> UserPermissions:
    """
    Grant a permission directly to a user. Granting twice is a no-op.

    Raises:
        NotFound: Unknown user or permission
    """
    await get_user(db, user_id)
    await get_permission(db, permission_id)

    async with guarded_store_call("database"):
        existing = await db.get(UserPermissions, (user_id, permission_id))
    if existing is not None:
        return existing

    grant = UserPermissions(user_id=user_id, permission_id=permission_id)
    try:
        async with atomic(db):
            db.add(grant)
    except ConstraintViolation:
        # A concurrent grant of the same pair won
        async with guarded_store_call("database"):
            existing = await db.get(UserPermissions, (user_id, permission_id))
        if existing is None:
            raise
        return existing

    logger.info("permission_granted_to_user", user_id=str(user_id), permission_id=str(permission_id))
    return grant


async def revoke_from_user(db: AsyncSession, user_id: UUID, permission_id: UUID) -> None:
    """Remove a direct grant. Missing grants are ignored."""
    async with atomic(db):
        result = await db.execute(
            delete(UserPermissions).where(
                UserPermissions.user_id == user_id,
                UserPermissions.permission_id == permission_id,
            )
        )
    if result.rowcount:
        logger.info(
            "permission_revoked_from_user", user_id=str(user_id), permission_id=str(permission_id)
        )


async def grant_to_group(db: AsyncSession, group_id: UUID, permission_id: UUID) -> GroupPermissions:
    """
    Grant a permission to a group. Granting twice is a no-op.

    Raises:
        NotFound: Unknown group or permission
    """
    await get_group(db, group_id)
    await get_permission(db, permission_id)

    async with guarded_store_call("database"):
        existing = await db.get(GroupPermissions, (group_id, permission_id))
    if existing is not None:
        return existing

    grant = GroupPermissions(group_id=group_id, permission_id=permission_id)
    try:
        async with atomic(db):
            db.add(grant)
    except ConstraintViolation:
        async with guarded_store_call("database"):
            existing = await db.get(GroupPermissions, (group_id, permission_id))
        if existing is None:
            raise
        return existing

    logger.info(
        "permission_granted_to_group", group_id=str(group_id), permission_id=str(permission_id)
    )
    return grant


async def revoke_from_group(db: AsyncSession, group_id: UUID, permission_id: UUID) -> None:
    """Remove a group grant. Missing grants are ignored."""
    async with atomic(db):
        result = await db.execute(
            delete(GroupPermissions).where(
                GroupPermissions.group_id == group_id,
                GroupPermissions.permission_id == permission_id,
            )
        )
    if result.rowcount:
        logger.info(
            "permission_revoked_from_group", group_id=str(group_id), permission_id=str(permission_id)
        )


async def list_user_grants(db: AsyncSession, user_id: UUID) -> Sequence[Permissions]:
    """Permissions granted directly to a user (not via their group)."""
    await get_user(db, user_id)
    async with guarded_store_call("database"):
        result = await db.execute(
            select(Permissions)
            .join(UserPermissions, UserPermissions.permission_id == Permissions.id)
            .where(UserPermissions.user_id == user_id)
            .order_by(Permissions.name)
        )
    return result.scalars().all()


async def list_group_grants(db: AsyncSession, group_id: UUID) -> Sequence[Permissions]:
    """Permissions granted to a group."""
    await get_group(db, group_id)
    async with guarded_store_call("database"):
        result = await db.execute(
            select(Permissions)
            .join(GroupPermissions, GroupPermissions.permission_id == Permissions.id)
            .where(GroupPermissions.group_id == group_id)
            .order_by(Permissions.name)
        )
    return result.scalars().all()

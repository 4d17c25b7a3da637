"""
Permission sync: Ensure database permissions table matches Permission enum.

On startup, it:
- Inserts any permissions in enum but not in DB
- Warns about orphan permissions in DB but not in enum

Orphans are legitimate (permissions created through the API); the warning
only flags names no route checks.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.core.logging import get_logger
from aloha.core.permissions import Permission
from aloha.core.store_guard import atomic, guarded_store_call
from aloha.models.permissions import Permissions

logger = get_logger(__name__)


async def sync_permissions(db: AsyncSession) -> int:
    """
    Ensure database permissions table matches Permission enum.

    Idempotent - safe to run on every startup.

    Returns:
        Number of permissions inserted
    """
    enum_names = {p.value for p in Permission}

    async with guarded_store_call("database"):
        result = await db.execute(select(Permissions.name))
    db_names = set(result.scalars().all())

    missing = enum_names - db_names
    async with atomic(db):
        for perm in Permission:
            if perm.value in missing:
                db.add(Permissions(name=perm.value, description=perm.description))
                logger.info("permission_seeded", name=perm.value)

    for name in db_names - enum_names:
        logger.warning(
            "orphan_permission",
            name=name,
            hint="Permission exists in DB but not in code",
        )

    logger.info("permissions_synced", total=len(enum_names), added=len(missing))
    return len(missing)

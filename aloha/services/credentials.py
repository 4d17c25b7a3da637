"""
Credential store: user creation and login verification.

Passwords are hashed with Argon2id before storage. Login failures are
reported as InvalidCredentials whether the username is unknown or the
password is wrong, and both paths run one full hash verification so they
take comparable time.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.core.errors import (
    ConstraintViolation,
    DuplicateUsername,
    InvalidCredentials,
    NotFound,
)
from aloha.core.logging import get_logger
from aloha.core.security import (
    dummy_password_hash,
    get_password_hash,
    is_legacy_hash,
    password_needs_rehash,
    verify_password,
)
from aloha.core.store_guard import atomic, guarded_store_call
from aloha.models.permissions import UserGroups
from aloha.models.user import Users
from aloha.services.sessions import SessionManager

logger = get_logger(__name__)


async def create_user(
    db: AsyncSession,
    username: str,
    password: str,
    group_id: UUID | None = None,
) -> Users:
    """
    Create a user with a hashed password.

    Args:
        db: Database session
        username: Unique username
        password: Plain text password (never stored)
        group_id: Optional group to place the user in

    Raises:
        DuplicateUsername: Username already taken
        NotFound: group_id does not exist
    """
    async with guarded_store_call("database"):
        existing = await db.execute(select(Users.id).where(Users.username == username))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateUsername()
        if group_id is not None and await db.get(UserGroups, group_id) is None:
            raise NotFound("Group not found")

    user = Users(
        username=username,
        password_hash=get_password_hash(password),
        user_group_id=group_id,
    )
    try:
        async with atomic(db):
            db.add(user)
    except ConstraintViolation as e:
        # Lost a race with a concurrent registration of the same name
        raise DuplicateUsername() from e

    logger.info("user_created", user_id=str(user.id), username=username)
    return user


async def verify_login(db: AsyncSession, username: str, password: str) -> UUID:
    """
    Check a username/password pair.

    On success, hashes in a legacy format or with outdated Argon2 parameters
    are replaced with a fresh Argon2 hash.

    Returns:
        The user's ID

    Raises:
        InvalidCredentials: Unknown username or wrong password
    """
    async with guarded_store_call("database"):
        result = await db.execute(select(Users).where(Users.username == username))
        user = result.scalar_one_or_none()

    if user is None:
        # Burn the same hashing cost as a real check
        verify_password(password, dummy_password_hash())
        logger.info("login_failed")
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        logger.info("login_failed", user_id=str(user.id))
        raise InvalidCredentials()

    if password_needs_rehash(user.password_hash):
        was_legacy = is_legacy_hash(user.password_hash)
        async with atomic(db):
            user.password_hash = get_password_hash(password)
        logger.info("password_rehashed", user_id=str(user.id), from_legacy=was_legacy)

    return user.id


async def change_password(
    db: AsyncSession,
    sessions: SessionManager,
    user_id: UUID,
    current_password: str,
    new_password: str,
) -> None:
    """
    Replace a user's password and revoke all of their sessions.

    Sessions are revoked before the commit, so if the session store is
    unreachable the password stays unchanged and the caller can retry.

    Raises:
        InvalidCredentials: current_password is wrong
        NotFound: Unknown user
        StoreUnavailable: Database or session store unreachable
    """
    async with guarded_store_call("database"):
        user = await db.get(Users, user_id)
    if user is None:
        raise NotFound("User not found")

    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentials()

    async with atomic(db):
        user.password_hash = get_password_hash(new_password)
        await db.flush()
        await sessions.destroy_all_sessions_for(user_id)

    logger.info("password_changed", user_id=str(user_id))

"""
Authorization gate: the single choke point for protected operations.

Every protected operation asks the gate, which first resolves the session
(who is calling) and only then the effective permissions (what they may do).
The gate fails closed: anything other than a resolved session plus a
matching permission is a Deny. The one exception is StoreUnavailable, which
propagates so callers can answer with a retryable error; it is never turned
into an Allow.

The gate only reads from the stores, so cancelling a check part-way leaves
nothing behind.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.core.errors import SessionExpired, SessionNotFound, StoreUnavailable
from aloha.core.logging import get_logger
from aloha.core.permissions import Permission, get_user_permissions, permission_name
from aloha.core.store_guard import guarded_store_call
from aloha.models.user import Users
from aloha.services.sessions import SessionManager

logger = get_logger(__name__)


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class Allow:
    user_id: UUID
    # Effective permissions of the caller at decision time
    permissions: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Deny:
    reason: DenyReason


Decision = Allow | Deny


class AuthorizationGate:
    """
    Combines the session manager and the permission resolver.

    Args:
        db: Database session of the current request
        sessions: Session manager bound to the request's redis client
    """

    def __init__(self, db: AsyncSession, sessions: SessionManager) -> None:
        self._db = db
        self._sessions = sessions

    async def authenticate(self, token: str | None) -> UUID | Deny:
        """
        Resolve the caller without checking any permission.

        Returns:
            The caller's user ID, or Deny(UNAUTHENTICATED) for a missing,
            unknown or expired session, or Deny(INTERNAL_ERROR) if the session
            could not be checked

        Raises:
            StoreUnavailable: Session store unreachable
        """
        if not token:
            return Deny(DenyReason.UNAUTHENTICATED)
        try:
            user_id = await self._sessions.resolve_session(token)
            async with guarded_store_call("database"):
                result = await self._db.execute(select(Users.id).where(Users.id == user_id))
                user_exists = result.scalar_one_or_none() is not None
        except (SessionNotFound, SessionExpired):
            return Deny(DenyReason.UNAUTHENTICATED)
        except StoreUnavailable:
            raise
        except Exception:
            logger.exception("session_resolution_failed")
            return Deny(DenyReason.INTERNAL_ERROR)

        if not user_exists:
            # Session left behind by a deleted user
            logger.warning("session_for_missing_user", user_id=str(user_id))
            return Deny(DenyReason.UNAUTHENTICATED)
        return user_id

    async def authorize(self, token: str | None, required: str | Permission) -> Decision:
        """
        Decide whether the caller may perform an operation.

        Returns:
            Allow(user_id) iff the session resolves and `required` is in the
            caller's effective permission set, else Deny(reason)

        Raises:
            StoreUnavailable: A backing store is unreachable
        """
        return await self.authorize_any(token, [required])

    async def authorize_any(
        self, token: str | None, accepted: list[str | Permission]
    ) -> Decision:
        """
        Like authorize(), but any one of `accepted` is enough.

        The returned Allow carries the caller's effective permissions so the
        route can apply ownership rules (e.g. own tweet vs any tweet).
        """
        caller = await self.authenticate(token)
        if isinstance(caller, Deny):
            return caller

        try:
            async with guarded_store_call("database"):
                effective = await get_user_permissions(self._db, caller)
        except StoreUnavailable:
            raise
        except Exception:
            logger.exception("permission_resolution_failed", user_id=str(caller))
            return Deny(DenyReason.INTERNAL_ERROR)

        if not effective & {permission_name(p) for p in accepted}:
            logger.info(
                "authorization_denied",
                user_id=str(caller),
                required=[permission_name(p) for p in accepted],
            )
            return Deny(DenyReason.INSUFFICIENT_PERMISSION)

        return Allow(user_id=caller, permissions=frozenset(effective))

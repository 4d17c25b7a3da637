"""
Authentication and authorization dependencies for FastAPI routes.

This module provides dependency functions for:
- Extracting the session token (cookie or bearer header)
- Building the per-request SessionManager and AuthorizationGate
- Requiring an authenticated caller, or a permission

Denials are mapped to 401 (no valid session) or 403 (valid session,
permission missing) with generic messages that never name the permission.

Usage:
    @router.delete("/groups/{group_id}")
    async def delete_group(
        group_id: UUID,
        caller: Annotated[Allow, Depends(require_permission(Permission.GROUP_MANAGE))],
    ):
        ...
"""

from collections.abc import Callable, Coroutine
from typing import Annotated, Any
from uuid import UUID

import redis.asyncio as redis
from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.config import settings
from aloha.core.database import get_db
from aloha.core.gate import Allow, AuthorizationGate, Deny, DenyReason
from aloha.core.logging import set_user_context
from aloha.core.permissions import Permission
from aloha.core.redis import get_redis
from aloha.services.sessions import SessionManager

NOT_AUTHENTICATED = "Not authenticated"
FORBIDDEN = "Forbidden"


async def get_session_manager(
    redis_client: Annotated[redis.Redis, Depends(get_redis)],  # type: ignore[type-arg]
) -> SessionManager:
    return SessionManager(redis_client)


async def get_gate(
    db: Annotated[AsyncSession, Depends(get_db)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> AuthorizationGate:
    return AuthorizationGate(db, sessions)


async def get_session_token(
    session_id: Annotated[str | None, Cookie(alias=settings.SESSION_COOKIE_NAME)] = None,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(HTTPBearer(auto_error=False))
    ] = None,
) -> str | None:
    """
    Extract the session token from the request.

    The cookie wins; an `Authorization: Bearer <token>` header is accepted
    for non-browser clients.
    """
    if session_id:
        return session_id
    if credentials:
        return credentials.credentials
    return None


def _raise_for_deny(denial: Deny) -> None:
    if denial.reason == DenyReason.UNAUTHENTICATED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN)


async def get_current_user_id(
    token: Annotated[str | None, Depends(get_session_token)],
    gate: Annotated[AuthorizationGate, Depends(get_gate)],
) -> UUID:
    """
    Require a valid session.

    Raises:
        HTTPException: 401 if the session is missing, unknown or expired
    """
    caller = await gate.authenticate(token)
    if isinstance(caller, Deny):
        _raise_for_deny(caller)
    assert isinstance(caller, UUID)
    set_user_context(caller)
    return caller


def require_permission(
    permission: str | Permission,
) -> Callable[[str | None, AuthorizationGate], Coroutine[Any, Any, Allow]]:
    """
    Create a FastAPI dependency that requires a specific permission.

    Returns:
        Dependency resolving to the gate's Allow decision

    Raises:
        HTTPException: 401 without a valid session, 403 without the permission
    """
    return require_any_permission([permission])


def require_any_permission(
    permissions: list[str | Permission],
) -> Callable[[str | None, AuthorizationGate], Coroutine[Any, Any, Allow]]:
    """
    Create a FastAPI dependency that requires ANY of the specified permissions.

    The resulting Allow carries the caller's full effective permission set,
    for routes with ownership rules.
    """

    async def permission_checker(
        token: Annotated[str | None, Depends(get_session_token)],
        gate: Annotated[AuthorizationGate, Depends(get_gate)],
    ) -> Allow:
        decision = await gate.authorize_any(token, permissions)
        if isinstance(decision, Deny):
            _raise_for_deny(decision)
        assert isinstance(decision, Allow)
        set_user_context(decision.user_id)
        return decision

    return permission_checker


# Type aliases for dependency injection
SessionToken = Annotated[str | None, Depends(get_session_token)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
RequireUserManage = Annotated[Allow, Depends(require_permission(Permission.USER_MANAGE))]
RequireGroupManage = Annotated[Allow, Depends(require_permission(Permission.GROUP_MANAGE))]
RequirePermissionManage = Annotated[
    Allow, Depends(require_permission(Permission.PERMISSION_MANAGE))
]

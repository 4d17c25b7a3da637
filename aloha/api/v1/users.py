"""
Users API endpoints
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.api.dependencies import PaginationParams
from aloha.api.flash import flash
from aloha.core.auth import RequirePermissionManage, RequireUserManage, Sessions, SessionToken
from aloha.core.database import get_db
from aloha.schemas.permission import GrantListResponse, GrantRequest, PermissionResponse
from aloha.schemas.user import (
    UserCreate,
    UserGroupAssignment,
    UserListResponse,
    UserResponse,
)
from aloha.services import credentials, permission_graph

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """
    Register a new user.

    Open to anyone. Fails with 409 if the username is taken.
    """
    user = await credentials.create_user(db, body.username, body.password)
    return UserResponse.model_validate(user)


@router.get("/", response_model=UserListResponse, include_in_schema=False)
@router.get("", response_model=UserListResponse)
async def list_users(
    pagination: Annotated[PaginationParams, Depends()],
    _: RequireUserManage,
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    """
    List users with pagination, ordered by username.
    """
    users, total = await permission_graph.list_users(db, pagination.offset, pagination.size)
    return UserListResponse(
        total=total,
        page=pagination.page,
        size=pagination.size,
        items=[UserResponse.model_validate(user) for user in users],
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    _: RequireUserManage,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await permission_graph.get_user(db, user_id)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    caller: RequireUserManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Delete a user together with their direct grants and tweets.

    Every session of the deleted user ends, including the caller's own
    when they delete themselves.
    """
    user = await permission_graph.get_user(db, user_id)
    username = user.username
    await permission_graph.delete_user(db, sessions, user_id)
    # No one is left to read a notice on the caller's destroyed session
    if user_id != caller.user_id:
        await flash(sessions, token, f"User '{username}' deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{user_id}/group", response_model=UserResponse)
async def set_user_group(
    user_id: UUID,
    body: UserGroupAssignment,
    _: RequireUserManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Place a user in a group, or remove them from their group with null."""
    user = await permission_graph.set_user_group(db, user_id, body.user_group_id)
    await flash(sessions, token, f"Group of '{user.username}' updated")
    return UserResponse.model_validate(user)


# ===== Direct permission grants =====


@router.get("/{user_id}/permissions", response_model=GrantListResponse)
async def list_user_permissions(
    user_id: UUID,
    _: RequirePermissionManage,
    db: AsyncSession = Depends(get_db),
) -> GrantListResponse:
    """Permissions granted directly to the user. Group permissions are not included."""
    permissions = await permission_graph.list_user_grants(db, user_id)
    return GrantListResponse(
        permissions=[PermissionResponse.model_validate(p) for p in permissions]
    )


@router.post(
    "/{user_id}/permissions",
    response_model=GrantListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def grant_user_permission(
    user_id: UUID,
    body: GrantRequest,
    _: RequirePermissionManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> GrantListResponse:
    """Grant a permission directly to a user. Granting twice changes nothing."""
    await permission_graph.grant_to_user(db, user_id, body.permission_id)
    permissions = await permission_graph.list_user_grants(db, user_id)
    await flash(sessions, token, "Permission granted")
    return GrantListResponse(
        permissions=[PermissionResponse.model_validate(p) for p in permissions]
    )


@router.delete("/{user_id}/permissions/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_user_permission(
    user_id: UUID,
    permission_id: UUID,
    _: RequirePermissionManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Revoke a direct grant. Revoking a grant that does not exist succeeds."""
    await permission_graph.revoke_from_user(db, user_id, permission_id)
    await flash(sessions, token, "Permission revoked")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Permissions API endpoints.

`/permissions/names` is public: the frontend uses it for permission-based
UI rendering. Everything else requires `permission_manage`.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.api.dependencies import PaginationParams
from aloha.api.flash import flash
from aloha.core.auth import RequirePermissionManage, Sessions, SessionToken
from aloha.core.database import get_db
from aloha.core.permissions import Permission
from aloha.schemas.permission import (
    PermissionCreate,
    PermissionListResponse,
    PermissionResponse,
    PermissionUpdate,
)
from aloha.services import permission_graph

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("/names")
async def list_permission_names() -> dict[str, str]:
    """
    List the permission names the application checks.

    Returns:
        Dictionary mapping enum names to stored permission names
        Example: {"POST_TWEET": "post_tweet", "USER_MANAGE": "user_manage"}
    """
    return {perm.name: perm.value for perm in Permission}


@router.get("/", response_model=PermissionListResponse, include_in_schema=False)
@router.get("", response_model=PermissionListResponse)
async def list_permissions(
    pagination: Annotated[PaginationParams, Depends()],
    _: RequirePermissionManage,
    db: AsyncSession = Depends(get_db),
) -> PermissionListResponse:
    permissions, total = await permission_graph.list_permissions(
        db, pagination.offset, pagination.size
    )
    return PermissionListResponse(
        total=total,
        page=pagination.page,
        size=pagination.size,
        items=[PermissionResponse.model_validate(p) for p in permissions],
    )


@router.post("", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    body: PermissionCreate,
    _: RequirePermissionManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> PermissionResponse:
    permission = await permission_graph.create_permission(db, body.name, body.description)
    await flash(sessions, token, f"Permission '{permission.name}' created")
    return PermissionResponse.model_validate(permission)


@router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: UUID,
    _: RequirePermissionManage,
    db: AsyncSession = Depends(get_db),
) -> PermissionResponse:
    permission = await permission_graph.get_permission(db, permission_id)
    return PermissionResponse.model_validate(permission)


@router.patch("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: UUID,
    body: PermissionUpdate,
    _: RequirePermissionManage,
    db: AsyncSession = Depends(get_db),
) -> PermissionResponse:
    """Change a permission's description. Names are immutable."""
    permission = await permission_graph.update_permission_description(
        db, permission_id, body.description
    )
    return PermissionResponse.model_validate(permission)


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: UUID,
    _: RequirePermissionManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a permission and every user or group assignment of it."""
    await permission_graph.delete_permission(db, permission_id)
    await flash(sessions, token, "Permission deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

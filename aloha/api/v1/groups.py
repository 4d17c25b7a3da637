"""
Groups API endpoints.

Group management requires `group_manage`; editing a group's permissions
requires `permission_manage`.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.api.dependencies import PaginationParams
from aloha.api.flash import flash
from aloha.core.auth import RequireGroupManage, RequirePermissionManage, Sessions, SessionToken
from aloha.core.database import get_db
from aloha.schemas.permission import (
    GrantListResponse,
    GrantRequest,
    GroupCreate,
    GroupListResponse,
    GroupResponse,
    PermissionResponse,
)
from aloha.services import permission_graph

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("/", response_model=GroupListResponse, include_in_schema=False)
@router.get("", response_model=GroupListResponse)
async def list_groups(
    pagination: Annotated[PaginationParams, Depends()],
    _: RequireGroupManage,
    db: AsyncSession = Depends(get_db),
) -> GroupListResponse:
    groups, total = await permission_graph.list_groups(db, pagination.offset, pagination.size)
    return GroupListResponse(
        total=total,
        page=pagination.page,
        size=pagination.size,
        items=[GroupResponse.model_validate(g) for g in groups],
    )


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    body: GroupCreate,
    _: RequireGroupManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> GroupResponse:
    group = await permission_graph.create_group(db, body.group_name)
    await flash(sessions, token, f"Group '{group.group_name}' created")
    return GroupResponse.model_validate(group)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: UUID,
    _: RequireGroupManage,
    db: AsyncSession = Depends(get_db),
) -> GroupResponse:
    group = await permission_graph.get_group(db, group_id)
    return GroupResponse.model_validate(group)


@router.patch("/{group_id}", response_model=GroupResponse)
async def rename_group(
    group_id: UUID,
    body: GroupCreate,
    _: RequireGroupManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> GroupResponse:
    group = await permission_graph.rename_group(db, group_id, body.group_name)
    await flash(sessions, token, f"Group renamed to '{group.group_name}'")
    return GroupResponse.model_validate(group)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: UUID,
    _: RequireGroupManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Delete a group.

    Members stay, without a group. The group's permission assignments are removed.
    """
    await permission_graph.delete_group(db, group_id)
    await flash(sessions, token, "Group deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===== Group permission grants =====


@router.get("/{group_id}/permissions", response_model=GrantListResponse)
async def list_group_permissions(
    group_id: UUID,
    _: RequirePermissionManage,
    db: AsyncSession = Depends(get_db),
) -> GrantListResponse:
    permissions = await permission_graph.list_group_grants(db, group_id)
    return GrantListResponse(
        permissions=[PermissionResponse.model_validate(p) for p in permissions]
    )


@router.post(
    "/{group_id}/permissions",
    response_model=GrantListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def grant_group_permission(
    group_id: UUID,
    body: GrantRequest,
    _: RequirePermissionManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> GrantListResponse:
    """Grant a permission to every member of the group. Granting twice changes nothing."""
    await permission_graph.grant_to_group(db, group_id, body.permission_id)
    permissions = await permission_graph.list_group_grants(db, group_id)
    await flash(sessions, token, "Permission granted to group")
    return GrantListResponse(
        permissions=[PermissionResponse.model_validate(p) for p in permissions]
    )


@router.delete("/{group_id}/permissions/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_group_permission(
    group_id: UUID,
    permission_id: UUID,
    _: RequirePermissionManage,
    token: SessionToken,
    sessions: Sessions,
    db: AsyncSession = Depends(get_db),
) -> Response:
    await permission_graph.revoke_from_group(db, group_id, permission_id)
    await flash(sessions, token, "Permission revoked from group")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

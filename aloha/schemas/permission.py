"""Pydantic schemas for Permission, Group and assignment endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from aloha.models.permissions import PermissionBase, UserGroupBase
from aloha.schemas.base import PageResponse, UTCDatetime


def _strip(v: str) -> str:
    return v.strip() if isinstance(v, str) else v


class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z][a-z0-9_]*$")
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip(v)


class PermissionUpdate(BaseModel):
    """Only the description of a permission can change."""

    description: str | None


class PermissionResponse(PermissionBase):
    id: UUID
    created_at: UTCDatetime

    model_config = {"from_attributes": True}


class PermissionListResponse(PageResponse):
    items: list[PermissionResponse]


class GroupCreate(BaseModel):
    group_name: str = Field(..., min_length=1, max_length=255)

    @field_validator("group_name", mode="before")
    @classmethod
    def strip_group_name(cls, v: str) -> str:
        return _strip(v)


class GroupResponse(UserGroupBase):
    id: UUID
    created_at: UTCDatetime

    model_config = {"from_attributes": True}


class GroupListResponse(PageResponse):
    items: list[GroupResponse]


class GrantRequest(BaseModel):
    permission_id: UUID


class GrantListResponse(BaseModel):
    permissions: list[PermissionResponse]

"""Pydantic schemas for User endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from aloha.core.security import validate_password_strength
from aloha.models.user import UserBase
from aloha.schemas.base import PageResponse, UTCDatetime


class UserCreate(BaseModel):
    """
    Request schema for user registration.

    New users always start without a group; placement goes through
    PUT /users/{id}/group, which needs user_manage.
    """

    username: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=255)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        is_valid, error_message = validate_password_strength(v)
        if not is_valid:
            raise ValueError(error_message)
        return v


class UserResponse(UserBase):
    """Public user fields. Never includes the password hash."""

    id: UUID
    created_at: UTCDatetime
    user_group_id: UUID | None = None

    model_config = {"from_attributes": True}


class UserListResponse(PageResponse):
    items: list[UserResponse]


class UserGroupAssignment(BaseModel):
    """Body for PUT /users/{id}/group. null removes the user from their group."""

    user_group_id: UUID | None

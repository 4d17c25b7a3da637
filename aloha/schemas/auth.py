"""
Authentication schemas for request/response validation.

- Login credentials and the session response
- Password change
- Flash messages
"""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from aloha.core.security import validate_password_strength


class LoginRequest(BaseModel):
    """Request schema for user login."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)  # Allow any length for existing users


class SessionResponse(BaseModel):
    """Response schema for a successful login. The token itself is in the cookie."""

    user_id: UUID
    username: str
    expires_in: int = Field(..., description="Session lifetime in seconds from now")


class MeResponse(BaseModel):
    """The authenticated caller and their effective permissions."""

    user_id: UUID
    username: str
    user_group_id: UUID | None = None
    permissions: list[str]


class PasswordChangeRequest(BaseModel):
    """Request schema for password change."""

    current_password: str = Field(..., min_length=1, max_length=255)
    new_password: str = Field(..., min_length=8, max_length=255)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        """Validate new password strength."""
        is_valid, error_message = validate_password_strength(v)
        if not is_valid:
            raise ValueError(error_message)
        return v


class FlashMessage(BaseModel):
    level: Literal["debug", "info", "success", "warning", "error"]
    message: str


class FlashMessagesResponse(BaseModel):
    messages: list[FlashMessage]


class LogoutAllResponse(BaseModel):
    revoked: int

"""
Authentication API endpoints.

This module provides endpoints for:
- Login (starts a server-side session, token in an HttpOnly cookie)
- Logout of the current session, or of every session of the caller
- The caller's identity and effective permissions
- Password change (ends every session)
- One-shot flash messages
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.config import settings
from aloha.core.auth import CurrentUserId, Sessions, SessionToken
from aloha.core.database import get_db
from aloha.core.logging import get_logger
from aloha.core.permissions import get_user_permissions
from aloha.core.store_guard import guarded_store_call
from aloha.schemas.auth import (
    FlashMessagesResponse,
    LoginRequest,
    LogoutAllResponse,
    MeResponse,
    PasswordChangeRequest,
    SessionResponse,
)
from aloha.schemas.base import MessageResponse
from aloha.services import credentials, permission_graph

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _set_session_cookie(response: Response, token: str) -> None:
    """
    Set the session cookie.

    HttpOnly and SameSite=strict; Secure in production.
    """
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,  # Prevent JavaScript access (XSS protection)
        secure=settings.ENVIRONMENT == "production",  # HTTPS only in production
        samesite="strict",  # CSRF protection
        max_age=settings.SESSION_TTL_SECONDS,
    )


def _clear_session_cookie(response: Response) -> None:
    # Match set_cookie params
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="strict",
    )


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    response: Response,
    sessions: Sessions,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionResponse:
    """
    Authenticate a user and start a session.

    Flow:
    1. Verify username/password (unknown user and wrong password fail alike)
    2. Upgrade legacy or outdated password hashes
    3. Create a session in Redis
    4. Set the session token as an HttpOnly cookie
    """
    user_id = await credentials.verify_login(db, body.username, body.password)
    token = await sessions.create_session(user_id)
    _set_session_cookie(response, token)

    logger.info("user_logged_in", user_id=str(user_id))
    return SessionResponse(
        user_id=user_id,
        username=body.username,
        expires_in=sessions.ttl_seconds,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    response: Response,
    token: SessionToken,
    sessions: Sessions,
) -> Response:
    """
    End the current session.

    Idempotent: succeeds without a session, or with one already ended.
    """
    if token:
        await sessions.destroy_session(token)
    response.status_code = status.HTTP_204_NO_CONTENT
    _clear_session_cookie(response)
    return response


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    response: Response,
    user_id: CurrentUserId,
    sessions: Sessions,
) -> LogoutAllResponse:
    """End every session of the caller, on every device."""
    revoked = await sessions.destroy_all_sessions_for(user_id)
    _clear_session_cookie(response)
    return LogoutAllResponse(revoked=revoked)


@router.get("/me", response_model=MeResponse)
async def me(
    user_id: CurrentUserId,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeResponse:
    """The authenticated caller and their effective permissions."""
    user = await permission_graph.get_user(db, user_id)
    async with guarded_store_call("database"):
        permissions = await get_user_permissions(db, user_id)
    return MeResponse(
        user_id=user.id,
        username=user.username,
        user_group_id=user.user_group_id,
        permissions=sorted(permissions),
    )


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: PasswordChangeRequest,
    response: Response,
    user_id: CurrentUserId,
    sessions: Sessions,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    """
    Change the caller's password.

    Every session of the caller ends, including this one; log in again with
    the new password.
    """
    await credentials.change_password(
        db, sessions, user_id, body.current_password, body.new_password
    )
    _clear_session_cookie(response)
    return MessageResponse(message="Password changed. Please log in again.")


@router.get("/messages", response_model=FlashMessagesResponse)
async def read_messages(
    user_id: CurrentUserId,
    token: SessionToken,
    sessions: Sessions,
) -> FlashMessagesResponse:
    """
    Deliver pending flash messages for this session.

    Each message is returned by exactly one call, then discarded.
    """
    assert token is not None  # CurrentUserId guarantees a valid session
    messages = await sessions.pop_flashes(token)
    return FlashMessagesResponse(messages=messages)  # type: ignore[arg-type]

"""
Tweets API endpoints.

Reading is public. Writing requires `post_tweet`; editing or deleting
someone else's tweet requires `edit_tweet` or `delete_post` respectively.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.api.dependencies import PaginationParams
from aloha.core.auth import FORBIDDEN, require_any_permission, require_permission
from aloha.core.database import get_db
from aloha.core.gate import Allow
from aloha.core.permissions import Permission
from aloha.models.tweet import Tweets
from aloha.schemas.tweet import TweetCreate, TweetListResponse, TweetResponse, TweetUpdate
from aloha.services import tweets as tweet_service

router = APIRouter(prefix="/tweets", tags=["tweets"])


def _ensure_owner_or(caller: Allow, tweet: Tweets, override: Permission) -> None:
    """Owners act on their own tweets; anyone else needs the override permission."""
    if tweet.user_id == caller.user_id:
        return
    if override.value not in caller.permissions:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN)


@router.get("/", response_model=TweetListResponse, include_in_schema=False)
@router.get("", response_model=TweetListResponse)
async def list_tweets(
    pagination: Annotated[PaginationParams, Depends()],
    user_id: Annotated[UUID | None, Query(description="Only tweets by this user")] = None,
    db: AsyncSession = Depends(get_db),
) -> TweetListResponse:
    """List tweets, newest first."""
    tweets, total = await tweet_service.list_tweets(
        db, pagination.offset, pagination.size, user_id=user_id
    )
    return TweetListResponse(
        total=total,
        page=pagination.page,
        size=pagination.size,
        items=[TweetResponse.model_validate(t) for t in tweets],
    )


@router.get("/{tweet_id}", response_model=TweetResponse)
async def get_tweet(
    tweet_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> TweetResponse:
    tweet = await tweet_service.get_tweet(db, tweet_id)
    return TweetResponse.model_validate(tweet)


@router.post("", response_model=TweetResponse, status_code=status.HTTP_201_CREATED)
async def create_tweet(
    body: TweetCreate,
    caller: Annotated[Allow, Depends(require_permission(Permission.POST_TWEET))],
    db: AsyncSession = Depends(get_db),
) -> TweetResponse:
    tweet = await tweet_service.create_tweet(db, caller.user_id, body.content)
    return TweetResponse.model_validate(tweet)


@router.patch("/{tweet_id}", response_model=TweetResponse)
async def update_tweet(
    tweet_id: UUID,
    body: TweetUpdate,
    caller: Annotated[
        Allow,
        Depends(require_any_permission([Permission.POST_TWEET, Permission.EDIT_TWEET])),
    ],
    db: AsyncSession = Depends(get_db),
) -> TweetResponse:
    tweet = await tweet_service.get_tweet(db, tweet_id)
    _ensure_owner_or(caller, tweet, Permission.EDIT_TWEET)
    tweet = await tweet_service.update_tweet(db, tweet, body.content)
    return TweetResponse.model_validate(tweet)


@router.delete("/{tweet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tweet(
    tweet_id: UUID,
    caller: Annotated[
        Allow,
        Depends(require_any_permission([Permission.POST_TWEET, Permission.DELETE_POST])),
    ],
    db: AsyncSession = Depends(get_db),
) -> Response:
    tweet = await tweet_service.get_tweet(db, tweet_id)
    _ensure_owner_or(caller, tweet, Permission.DELETE_POST)
    await tweet_service.delete_tweet(db, tweet)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

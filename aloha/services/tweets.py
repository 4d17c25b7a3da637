"""Tweet CRUD. Authorization happens in the routes, through the gate."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.core.errors import NotFound
from aloha.core.store_guard import atomic, guarded_store_call
from aloha.models.tweet import Tweets


async def create_tweet(db: AsyncSession, user_id: UUID, content: str) -> Tweets:
    tweet = Tweets(user_id=user_id, content=content)
    async with atomic(db):
        db.add(tweet)
    return tweet


async def get_tweet(db: AsyncSession, tweet_id: UUID) -> Tweets:
    async with guarded_store_call("database"):
        tweet = await db.get(Tweets, tweet_id)
    if tweet is None:
        raise NotFound("Tweet not found")
    return tweet


async def list_tweets(
    db: AsyncSession,
    offset: int = 0,
    limit: int = 10,
    user_id: UUID | None = None,
) -> tuple[Sequence[Tweets], int]:
    """List tweets, newest first, optionally only one user's."""
    count_query = select(func.count()).select_from(Tweets)
    query = select(Tweets).order_by(desc(Tweets.created_at)).offset(offset).limit(limit)
    if user_id is not None:
        count_query = count_query.where(Tweets.user_id == user_id)
        query = query.where(Tweets.user_id == user_id)

    async with guarded_store_call("database"):
        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(query)
    return result.scalars().all(), total


async def update_tweet(db: AsyncSession, tweet: Tweets, content: str) -> Tweets:
    async with atomic(db):
        tweet.content = content
    return tweet


async def delete_tweet(db: AsyncSession, tweet: Tweets) -> None:
    async with atomic(db):
        await db.delete(tweet)

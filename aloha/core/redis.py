from collections.abc import AsyncGenerator

import redis.asyncio as redis

from aloha.config import settings


def create_redis_client() -> redis.Redis:  # type: ignore[type-arg]
    """Create the session store client with bounded socket timeouts."""
    return redis.from_url(
        str(settings.REDIS_URL),
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.STORE_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.STORE_TIMEOUT_SECONDS,
    )


async def get_redis() -> AsyncGenerator[redis.Redis, None]:  # type: ignore[type-arg]
    """
    Dependency for getting async redis connection.
    """
    client = create_redis_client()
    try:
        yield client
    finally:
        await client.aclose()

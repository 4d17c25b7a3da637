"""
Bounded calls against the backing stores.

Wrap every database or redis round-trip of the core in `guarded_store_call`
so that no operation can hang: the block is cancelled after
STORE_TIMEOUT_SECONDS, and timeouts or connection failures surface as
StoreUnavailable, which callers may retry.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from aloha.config import settings
from aloha.core.errors import ConstraintViolation, StoreUnavailable
from aloha.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def guarded_store_call(store: str, timeout: float | None = None) -> AsyncIterator[None]:
    """
    Run the enclosed store calls under a deadline.

    Args:
        store: "database" or "redis", used for logging only
        timeout: Override for settings.STORE_TIMEOUT_SECONDS

    Raises:
        StoreUnavailable: On timeout or connection failure
    """
    limit = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        async with asyncio.timeout(limit):
            yield
    except TimeoutError as e:
        logger.warning("store_timeout", store=store, timeout=limit)
        raise StoreUnavailable() from e
    except (RedisConnectionError, RedisTimeoutError, PoolTimeoutError) as e:
        logger.warning("store_unreachable", store=store, error=str(e))
        raise StoreUnavailable() from e
    except (OperationalError, InterfaceError) as e:
        logger.warning("store_unreachable", store=store, error=str(e.orig))
        raise StoreUnavailable() from e
    except DBAPIError as e:
        if e.connection_invalidated:
            logger.warning("store_connection_lost", store=store)
            raise StoreUnavailable() from e
        raise


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[None]:
    """
    Run the enclosed statements as one transaction and commit at the end.

    Any error rolls the whole unit back, so a partially applied multi-table
    change is never visible to other sessions. Cancellation, including the
    deadline firing, rolls back too.

    Raises:
        ConstraintViolation: A unique or foreign key constraint failed
        StoreUnavailable: Timeout or connection failure
    """
    async with guarded_store_call("database"):
        try:
            yield
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConstraintViolation() from e
        except BaseException:
            await db.rollback()
            raise

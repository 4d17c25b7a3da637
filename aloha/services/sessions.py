"""
Server-side sessions stored in Redis.

Keys (the token itself is never stored, only its SHA-256):
- session:{hash}         JSON {"user_id", "created_at", "expires_at"}
- user_sessions:{user}   set of session hashes belonging to a user
- session_flash:{hash}   list of pending flash messages (JSON)

A session record outlives its expires_at by SESSION_EXPIRED_GRACE_SECONDS so
that an expired token can be reported as expired rather than unknown. After
that, Redis drops the key and the token is simply not found.

The Redis handle is passed in by the caller; nothing here reads a global
client.
"""

import json
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import WatchError

from aloha.config import settings
from aloha.core.errors import SessionExpired, SessionNotFound
from aloha.core.logging import get_logger
from aloha.core.security import create_session_token, hash_session_token
from aloha.core.store_guard import guarded_store_call

logger = get_logger(__name__)

FLASH_LEVELS = ("debug", "info", "success", "warning", "error")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _session_key(token_hash: str) -> str:
    return f"session:{token_hash}"


def _user_index_key(user_id: UUID) -> str:
    return f"user_sessions:{user_id}"


def _flash_key(token_hash: str) -> str:
    return f"session_flash:{token_hash}"


def _decode(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


class SessionManager:
    """
    Issues, resolves and revokes sessions.

    Args:
        redis_client: Async Redis client (fakeredis in tests)
        ttl_seconds: Session lifetime, defaults to settings.SESSION_TTL_SECONDS
        timeout: Per-operation deadline, defaults to settings.STORE_TIMEOUT_SECONDS
    """

    def __init__(
        self,
        redis_client: redis.Redis,  # type: ignore[type-arg]
        ttl_seconds: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds or settings.SESSION_TTL_SECONDS
        self._timeout = timeout
        self._key_ttl = self.ttl_seconds + settings.SESSION_EXPIRED_GRACE_SECONDS

    async def create_session(self, user_id: UUID) -> str:
        """
        Start a session for an authenticated user.

        Returns:
            The opaque session token to hand to the client
        """
        token = create_session_token()
        token_hash = hash_session_token(token)
        now = _utcnow()
        record = {
            "user_id": str(user_id),
            "created_at": now.isoformat(),
            "expires_at": (now + timedelta(seconds=self.ttl_seconds)).isoformat(),
        }

        async with guarded_store_call("redis", self._timeout):
            pipe = self._redis.pipeline(transaction=True)
            pipe.set(_session_key(token_hash), json.dumps(record), ex=self._key_ttl)
            pipe.sadd(_user_index_key(user_id), token_hash)
            # The index lives as long as the newest session
            pipe.expire(_user_index_key(user_id), self._key_ttl)
            await pipe.execute()

        logger.info("session_created", user_id=str(user_id))
        return token

    async def resolve_session(self, token: str) -> UUID:
        """
        Resolve a session token to its user ID.

        Read-only: an expired record is left for Redis to evict.

        Raises:
            SessionNotFound: Unknown, destroyed or unreadable session
            SessionExpired: The session's lifetime has passed
        """
        if not token:
            raise SessionNotFound()

        async with guarded_store_call("redis", self._timeout):
            raw = await self._redis.get(_session_key(hash_session_token(token)))

        if raw is None:
            raise SessionNotFound()

        try:
            record = json.loads(_decode(raw))
            user_id = UUID(record["user_id"])
            expires_at = datetime.fromisoformat(record["expires_at"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("session_record_corrupt")
            raise SessionNotFound() from e

        if expires_at <= _utcnow():
            raise SessionExpired()

        return user_id

    async def destroy_session(self, token: str) -> None:
        """Log out one session. Destroying an absent session is a no-op."""
        if not token:
            return
        token_hash = hash_session_token(token)

        async with guarded_store_call("redis", self._timeout):
            raw = await self._redis.get(_session_key(token_hash))
            pipe = self._redis.pipeline(transaction=True)
            pipe.delete(_session_key(token_hash), _flash_key(token_hash))
            if raw is not None:
                try:
                    user_id = UUID(json.loads(_decode(raw))["user_id"])
                    pipe.srem(_user_index_key(user_id), token_hash)
                except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                    pass  # Corrupt record; deleting it is enough
            await pipe.execute()

        if raw is not None:
            logger.info("session_destroyed")

    async def destroy_all_sessions_for(self, user_id: UUID) -> int:
        """
        Revoke every session of a user.

        Used when the user's credentials change or the user is deleted. The
        per-user index is WATCHed so a session created concurrently is
        either included or the deletion is retried.

        Returns:
            Number of sessions that were revoked
        """
        index_key = _user_index_key(user_id)

        async with guarded_store_call("redis", self._timeout):
            async with self._redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(index_key)
                        hashes = [_decode(h) for h in await pipe.smembers(index_key)]
                        pipe.multi()
                        keys = [index_key]
                        for token_hash in hashes:
                            keys.append(_session_key(token_hash))
                            keys.append(_flash_key(token_hash))
                        pipe.delete(*keys)
                        await pipe.execute()
                        break
                    except WatchError:
                        logger.debug("session_index_changed_retrying", user_id=str(user_id))
                        continue

        logger.info("sessions_revoked", user_id=str(user_id), count=len(hashes))
        return len(hashes)

    async def add_flash(self, token: str, message: str, level: str = "info") -> None:
        """
        Queue a one-shot notice for the session's next read.

        Raises:
            ValueError: Unknown level
        """
        if level not in FLASH_LEVELS:
            raise ValueError(f"Unknown flash level: {level}")
        token_hash = hash_session_token(token)
        entry = json.dumps({"level": level, "message": message})

        async with guarded_store_call("redis", self._timeout):
            pipe = self._redis.pipeline(transaction=True)
            pipe.rpush(_flash_key(token_hash), entry)
            pipe.expire(_flash_key(token_hash), self._key_ttl)
            await pipe.execute()

    async def pop_flashes(self, token: str) -> list[dict[str, str]]:
        """
        Drain the session's flash queue.

        Read and delete happen in one transaction, so each message is
        delivered to exactly one read.
        """
        token_hash = hash_session_token(token)

        async with guarded_store_call("redis", self._timeout):
            pipe = self._redis.pipeline(transaction=True)
            pipe.lrange(_flash_key(token_hash), 0, -1)
            pipe.delete(_flash_key(token_hash))
            entries, _ = await pipe.execute()

        messages = []
        for entry in entries:
            try:
                messages.append(json.loads(_decode(entry)))
            except json.JSONDecodeError:
                logger.warning("flash_entry_corrupt")
        return messages

"""
Redis session storage.

Key Format: {key_prefix}{phone}
Value: JSON {"id": "<sessionid>"}

Storing None deletes the key. An optional TTL bounds how long a session
survives without being refreshed.
"""

import json
import logging

from ..services.exceptions import SessionStorageException
from ..services.session_cache import Session, mask

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "tinkoff:session:"


class RedisSessionStorage:
    def __init__(self, redis_client, key_prefix: str = DEFAULT_KEY_PREFIX, ttl_seconds: int | None = None) -> None:
        """
        Initialize storage.

        Args:
            redis_client: redis.asyncio client (or compatible mock)
            key_prefix: Namespace for session keys
            ttl_seconds: Expiry for stored sessions, None keeps them until replaced
        """
        self._redis = redis_client
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    def _get_cache_key(self, phone: str) -> str:
        return f"{self.key_prefix}{phone}"

    async def load_session(self, phone: str) -> Session | None:
        data = await self._redis.get(self._get_cache_key(phone))
        if not data:
            return None

        try:
            return Session.from_dict(json.loads(data))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise SessionStorageException(f"Corrupted session record: {e}", identity=mask(phone)) from e

    async def update_session(self, phone: str, session: Session | None) -> None:
        key = self._get_cache_key(phone)
        if session is None:
            await self._redis.delete(key)
            logger.debug(f"Deleted session key for {mask(phone)}")
            return

        value = json.dumps(session.to_dict())
        if self.ttl_seconds:
            await self._redis.setex(key, self.ttl_seconds, value)
        else:
            await self._redis.set(key, value)
        logger.debug(f"Saved session key for {mask(phone)} (TTL: {self.ttl_seconds})")

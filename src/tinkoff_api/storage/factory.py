from typing import TYPE_CHECKING

from ..core.config import SessionStorageOption
from .json_file import JsonFileSessionStorage
from .memory import InMemorySessionStorage
from .redis_store import RedisSessionStorage

if TYPE_CHECKING:
    from ..core.config import Settings
    from ..services.session_cache import SessionStorage


def build_session_storage(settings: "Settings", redis_client=None) -> "SessionStorage":
    """Create the session storage selected by TINKOFF_SESSION_STORAGE."""
    backend = settings.TINKOFF_SESSION_STORAGE
    if backend == SessionStorageOption.MEMORY:
        return InMemorySessionStorage()

    if backend == SessionStorageOption.REDIS:
        if redis_client is None:
            from redis.asyncio import Redis

            redis_client = Redis.from_url(settings.REDIS_SESSION_URL, decode_responses=True)
        return RedisSessionStorage(
            redis_client,
            key_prefix=settings.REDIS_SESSION_KEY_PREFIX,
            ttl_seconds=settings.REDIS_SESSION_TTL,
        )

    return JsonFileSessionStorage(settings.TINKOFF_SESSIONS_FILE)

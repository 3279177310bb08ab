"""Session storage adapters."""

from .json_file import JsonFileSessionStorage
from .memory import InMemorySessionStorage
from .redis_store import RedisSessionStorage
from .factory import build_session_storage

__all__ = [
    "InMemorySessionStorage",
    "JsonFileSessionStorage",
    "RedisSessionStorage",
    "build_session_storage",
]

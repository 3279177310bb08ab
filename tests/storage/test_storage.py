"""
Unit tests for the session storage adapters.

Tests:
- JSON file storage round trip, entry removal and corrupt files
- Redis storage keys, TTL and corrupt records (mocked client)
- build_session_storage backend selection
"""

import asyncio
import json

import pytest
from fakes import PHONE

from tinkoff_api.core.config import SessionStorageOption
from tinkoff_api.services.exceptions import SessionStorageException
from tinkoff_api.services.session_cache import Session, SessionCache
from tinkoff_api.storage import (
    InMemorySessionStorage,
    JsonFileSessionStorage,
    RedisSessionStorage,
    build_session_storage,
)


class TestJsonFileSessionStorage:
    @pytest.mark.asyncio
    async def test_missing_file_has_no_session(self, tmp_path) -> None:
        storage = JsonFileSessionStorage(tmp_path / "sessions.json")

        assert await storage.load_session(PHONE) is None

    @pytest.mark.asyncio
    async def test_update_and_load(self, tmp_path) -> None:
        path = tmp_path / "nested" / "sessions.json"
        storage = JsonFileSessionStorage(path)

        await storage.update_session(PHONE, Session(id="abc"))
        await storage.update_session("+79991111111", Session(id="def"))

        assert await storage.load_session(PHONE) == Session(id="abc")
        assert json.loads(path.read_text()) == {PHONE: {"id": "abc"}, "+79991111111": {"id": "def"}}

    @pytest.mark.asyncio
    async def test_none_removes_entry(self, tmp_path) -> None:
        path = tmp_path / "sessions.json"
        path.write_text(json.dumps({PHONE: {"id": "abc"}, "+79991111111": {"id": "def"}}))
        storage = JsonFileSessionStorage(path)

        await storage.update_session(PHONE, None)

        assert await storage.load_session(PHONE) is None
        assert json.loads(path.read_text()) == {"+79991111111": {"id": "def"}}

    @pytest.mark.asyncio
    async def test_concurrent_updates_for_different_phones(self, tmp_path) -> None:
        """Parallel writers for different phones keep every entry."""
        path = tmp_path / "sessions.json"
        storage = JsonFileSessionStorage(path)
        phones = [f"+7999000000{i}" for i in range(8)]

        for _ in range(20):
            await asyncio.gather(*(storage.update_session(phone, Session(id=phone)) for phone in phones))

            for phone in phones:
                assert await storage.load_session(phone) == Session(id=phone)
            await asyncio.gather(*(storage.update_session(phone, None) for phone in phones))
            assert json.loads(path.read_text()) == {}

        assert list(tmp_path.iterdir()) == [path]

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path) -> None:
        path = tmp_path / "sessions.json"
        path.write_text("{not json")
        storage = JsonFileSessionStorage(path)

        with pytest.raises(SessionStorageException, match="Invalid JSON"):
            await storage.load_session(PHONE)

    @pytest.mark.asyncio
    async def test_survives_cache_restart(self, tmp_path) -> None:
        """A session stored by one cache is loaded by the next one."""
        path = tmp_path / "sessions.json"

        await SessionCache(JsonFileSessionStorage(path)).store(PHONE, Session(id="persisted"))

        assert await SessionCache(JsonFileSessionStorage(path)).resolve(PHONE) == Session(id="persisted")


class TestRedisSessionStorage:
    @pytest.mark.asyncio
    async def test_load_miss(self, mock_redis) -> None:
        storage = RedisSessionStorage(mock_redis)

        assert await storage.load_session(PHONE) is None
        mock_redis.get.assert_awaited_once_with(f"tinkoff:session:{PHONE}")

    @pytest.mark.asyncio
    async def test_load_hit(self, mock_redis) -> None:
        mock_redis.get.return_value = json.dumps({"id": "abc"})
        storage = RedisSessionStorage(mock_redis, key_prefix="test:")

        assert await storage.load_session(PHONE) == Session(id="abc")
        mock_redis.get.assert_awaited_once_with(f"test:{PHONE}")

    @pytest.mark.asyncio
    async def test_corrupt_record(self, mock_redis) -> None:
        mock_redis.get.return_value = "not-json"
        storage = RedisSessionStorage(mock_redis)

        with pytest.raises(SessionStorageException, match="Corrupted session record"):
            await storage.load_session(PHONE)

    @pytest.mark.asyncio
    async def test_update_without_ttl(self, mock_redis) -> None:
        storage = RedisSessionStorage(mock_redis)

        await storage.update_session(PHONE, Session(id="abc"))

        mock_redis.set.assert_awaited_once_with(f"tinkoff:session:{PHONE}", json.dumps({"id": "abc"}))
        mock_redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_with_ttl(self, mock_redis) -> None:
        storage = RedisSessionStorage(mock_redis, ttl_seconds=3600)

        await storage.update_session(PHONE, Session(id="abc"))

        mock_redis.setex.assert_awaited_once_with(f"tinkoff:session:{PHONE}", 3600, json.dumps({"id": "abc"}))

    @pytest.mark.asyncio
    async def test_none_deletes_key(self, mock_redis) -> None:
        storage = RedisSessionStorage(mock_redis)

        await storage.update_session(PHONE, None)

        mock_redis.delete.assert_awaited_once_with(f"tinkoff:session:{PHONE}")

    @pytest.mark.asyncio
    async def test_connection_error_wrapped_by_cache(self, mock_redis) -> None:
        mock_redis.get.side_effect = ConnectionError("redis down")
        cache = SessionCache(RedisSessionStorage(mock_redis))

        with pytest.raises(SessionStorageException, match="redis down"):
            await cache.resolve(PHONE)


class TestBuildSessionStorage:
    def test_memory(self, settings) -> None:
        assert isinstance(build_session_storage(settings), InMemorySessionStorage)

    def test_json_file(self, settings, tmp_path) -> None:
        settings = settings.model_copy(
            update={
                "TINKOFF_SESSION_STORAGE": SessionStorageOption.JSON,
                "TINKOFF_SESSIONS_FILE": str(tmp_path / "sessions.json"),
            }
        )

        storage = build_session_storage(settings)

        assert isinstance(storage, JsonFileSessionStorage)
        assert storage.path == tmp_path / "sessions.json"

    def test_redis(self, settings, mock_redis) -> None:
        settings = settings.model_copy(
            update={
                "TINKOFF_SESSION_STORAGE": SessionStorageOption.REDIS,
                "REDIS_SESSION_KEY_PREFIX": "app:",
                "REDIS_SESSION_TTL": 600,
            }
        )

        storage = build_session_storage(settings, redis_client=mock_redis)

        assert isinstance(storage, RedisSessionStorage)
        assert storage.key_prefix == "app:"
        assert storage.ttl_seconds == 600

from unittest.mock import AsyncMock, Mock

import pytest

from fakes import PASSWORD, PHONE, CountingAuthFlow, FakeHttpSession

from tinkoff_api.core.config import SessionStorageOption, Settings
from tinkoff_api.services.auth.base import Credential
from tinkoff_api.services.engine import ExchangeEngine
from tinkoff_api.services.rate_limiter import RateLimiters
from tinkoff_api.services.retry import RetryPolicy
from tinkoff_api.services.session_cache import SessionCache
from tinkoff_api.storage import InMemorySessionStorage

# ============== Fixtures ==============


@pytest.fixture
def settings() -> Settings:
    """Settings with zero backoff and no keep-alive, isolated from .env."""
    return Settings(
        _env_file=None,
        TINKOFF_PHONE=PHONE,
        TINKOFF_PASSWORD=PASSWORD,
        TINKOFF_RETRY_TRANSPORT_BASE=0.0,
        TINKOFF_RETRY_RATE_LIMIT_BASE=0.0,
        TINKOFF_KEEPALIVE_ENABLED=False,
        TINKOFF_SESSION_STORAGE=SessionStorageOption.MEMORY,
    )


@pytest.fixture
def credential() -> Credential:
    return Credential(phone=PHONE, password=PASSWORD)


@pytest.fixture
def confirmation_provider():
    provider = Mock()
    provider.get_confirmation_code = AsyncMock(return_value="1234")
    return provider


@pytest.fixture
def http() -> FakeHttpSession:
    return FakeHttpSession()


@pytest.fixture
def storage() -> InMemorySessionStorage:
    return InMemorySessionStorage()


@pytest.fixture
def session_cache(storage) -> SessionCache:
    return SessionCache(storage)


@pytest.fixture
def auth_flow(credential) -> CountingAuthFlow:
    return CountingAuthFlow(credential)


@pytest.fixture
def sleep() -> AsyncMock:
    """Recorded, instant backoff sleep."""
    return AsyncMock(return_value=None)


@pytest.fixture
def engine(settings, session_cache, auth_flow, http, sleep) -> ExchangeEngine:
    return ExchangeEngine(
        settings,
        identity=PHONE,
        session_cache=session_cache,
        auth_flow=auth_flow,
        http_session=http,
        rate_limiters=RateLimiters(),
        retry_policy=RetryPolicy.from_settings(settings, sleep=sleep),
    )


@pytest.fixture
def mock_redis():
    """Mock Redis connection for unit tests."""
    mock_redis = Mock()
    mock_redis.get = AsyncMock(return_value=None)
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.setex = AsyncMock(return_value=True)
    mock_redis.delete = AsyncMock(return_value=1)
    return mock_redis

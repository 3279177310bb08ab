import os
from enum import Enum
from functools import lru_cache

from pydantic import SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CredentialSettings(BaseSettings):
    TINKOFF_PHONE: str = ""
    TINKOFF_PASSWORD: SecretStr = SecretStr("")


class HttpSettings(BaseSettings):
    """Transport settings shared by both API surfaces."""

    TINKOFF_BASE_URL: str = "https://www.tinkoff.ru/api"

    # Fixed client-origin marker attached to every common API call
    TINKOFF_ORIGIN: str = "web,ib5,platform"

    TINKOFF_REQUEST_TIMEOUT: int = 30  # seconds

    # Browser impersonation profile for curl_cffi
    TINKOFF_IMPERSONATE: str = "chrome124"

    # Client identification headers for the invest gateway
    TINKOFF_INVEST_APP_NAME: str = "invest"
    TINKOFF_INVEST_APP_VERSION: str = "1.328.0"


class RetrySettings(BaseSettings):
    """Backoff bases and caps (seconds) for the three retry strategies.

    - transport: non-200 responses and connection failures, unbounded
    - rate limit: REQUEST_RATE_LIMIT_EXCEEDED, 5 attempts
    - reauth: INSUFFICIENT_PRIVILEGES, 1 attempt, no delay
    """

    TINKOFF_RETRY_TRANSPORT_BASE: float = 1.0
    TINKOFF_RETRY_TRANSPORT_FACTOR: float = 2.0
    TINKOFF_RETRY_TRANSPORT_JITTER: float = 0.5
    TINKOFF_RETRY_TRANSPORT_MAX_DELAY: float = 300.0

    TINKOFF_RETRY_RATE_LIMIT_BASE: float = 60.0
    TINKOFF_RETRY_RATE_LIMIT_FACTOR: float = 2.0
    TINKOFF_RETRY_RATE_LIMIT_JITTER: float = 0.2
    TINKOFF_RETRY_RATE_LIMIT_MAX_DELAY: float = 1800.0
    TINKOFF_RETRY_RATE_LIMIT_MAX: int = 5

    TINKOFF_RETRY_REAUTH_DELAY: float = 0.0


class KeepAliveSettings(BaseSettings):
    TINKOFF_KEEPALIVE_ENABLED: bool = True
    TINKOFF_KEEPALIVE_INTERVAL: float = 60.0  # seconds


class RateLimitSettings(BaseSettings):
    """Per-endpoint call quotas.

    Format: path -> list of [max_calls, window_seconds]. A call is admitted
    only when every window for its path admits it.
    """

    TINKOFF_RATE_LIMITS: dict[str, list[tuple[int, float]]] = {
        "/common/v1/shopping_receipt": [(25, 75.0), (75, 660.0)],
    }


class AuthModeOption(str, Enum):
    API = "api"
    BROWSER = "browser"


class BrowserAuthSettings(BaseSettings):
    """Configuration for the browser-driven login fallback.

    When TINKOFF_BROWSER_SERVER is set, SeleniumBase connects to a remote
    Selenium Grid instead of launching a local Chrome.
    """

    TINKOFF_AUTH_MODE: AuthModeOption = AuthModeOption.API

    TINKOFF_LOGIN_URL: str = "https://www.tinkoff.ru/auth/login"
    TINKOFF_SESSION_COOKIE: str = "api_session"

    TINKOFF_BROWSER: str = "chrome"
    TINKOFF_BROWSER_SERVER: str | None = None
    TINKOFF_BROWSER_PORT: int = 4444
    TINKOFF_BROWSER_HEADLESS: bool = False
    TINKOFF_BROWSER_UC: bool = True

    # Detect phase tuning
    TINKOFF_BROWSER_POLL_INTERVAL: float = 0.5
    TINKOFF_BROWSER_STEP_TIMEOUT: float = 120.0


class SessionStorageOption(str, Enum):
    MEMORY = "memory"
    JSON = "json"
    REDIS = "redis"


class SessionStorageSettings(BaseSettings):
    TINKOFF_SESSION_STORAGE: SessionStorageOption = SessionStorageOption.JSON
    TINKOFF_SESSIONS_FILE: str = "~/.tinkoff/sessions.json"

    REDIS_SESSION_HOST: str = "localhost"
    REDIS_SESSION_PORT: int = 6379
    REDIS_SESSION_DB: int = 0
    REDIS_SESSION_KEY_PREFIX: str = "tinkoff:session:"
    REDIS_SESSION_TTL: int | None = None  # seconds, None = no expiry

    @computed_field  # type: ignore[prop-decorator]
    @property
    def REDIS_SESSION_URL(self) -> str:
        return f"redis://{self.REDIS_SESSION_HOST}:{self.REDIS_SESSION_PORT}/{self.REDIS_SESSION_DB}"


class Settings(
    CredentialSettings,
    HttpSettings,
    RetrySettings,
    KeepAliveSettings,
    RateLimitSettings,
    BrowserAuthSettings,
    SessionStorageSettings,
):
    model_config = SettingsConfigDict(
        env_file=os.path.join(os.getcwd(), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded from the environment on first use."""
    return Settings()

# ============================================
# tinkoff_api - Async client for the Tinkoff web API
# ============================================
#
# Session-managed access to two API surfaces:
#   Common: form-encoded POST, resultCode envelope
#   Invest: query-encoded GET, {errorMessage, errorCode} error body
#
# Login:
#   api:     programmatic sign-up sequence with SMS confirmation
#   browser: SeleniumBase-driven login page state machine
# ============================================

from .core.config import Settings, get_settings
from .services.auth import (
    ApiAuthFlow,
    AuthFlow,
    BrowserAuthFlow,
    BrowserAuthStep,
    ConfirmationProvider,
    Credential,
    SeleniumBrowserDriver,
)
from .services.client import TinkoffClient
from .services.exceptions import (
    AuthFlowException,
    BrowserDriverException,
    InvestApiException,
    NoDataFoundException,
    ResultCodeException,
    SessionStorageException,
    TinkoffException,
    TransportException,
    UnauthorizedException,
)
from .services.session_cache import Session, SessionCache
from .storage import (
    InMemorySessionStorage,
    JsonFileSessionStorage,
    RedisSessionStorage,
    build_session_storage,
)

__all__ = [
    # Client
    "TinkoffClient",
    "Credential",
    "Settings",
    "get_settings",
    # Auth
    "AuthFlow",
    "ApiAuthFlow",
    "BrowserAuthFlow",
    "BrowserAuthStep",
    "ConfirmationProvider",
    "SeleniumBrowserDriver",
    # Sessions
    "Session",
    "SessionCache",
    "InMemorySessionStorage",
    "JsonFileSessionStorage",
    "RedisSessionStorage",
    "build_session_storage",
    # Exceptions
    "TinkoffException",
    "TransportException",
    "ResultCodeException",
    "NoDataFoundException",
    "UnauthorizedException",
    "InvestApiException",
    "AuthFlowException",
    "BrowserDriverException",
    "SessionStorageException",
]

"""
TinkoffClient - typed operations over the exchange engine.

Usage:
    settings = get_settings()
    credential = Credential(phone="+79990000000", password="secret")

    async with TinkoffClient(settings, credential, confirmation_provider, storage) as client:
        accounts = await client.accounts_light_ib()
        operations = await client.operations(OperationsIn(account=accounts[0].id, start=since))
"""

import logging
from typing import Any

from curl_cffi.requests import AsyncSession

from ..core.config import AuthModeOption, Settings
from ..schemas.common import (
    Account,
    AccountsLightIbIn,
    Operation,
    OperationsIn,
    ShoppingReceiptIn,
    ShoppingReceiptOut,
)
from ..schemas.invest import (
    InvestAccountsIn,
    InvestAccountsOut,
    InvestOperationsIn,
    InvestOperationsOut,
    InvestOperationTypesIn,
    InvestOperationTypesOut,
)
from .auth import ApiAuthFlow, AuthFlow, BrowserAuthFlow, ConfirmationProvider, Credential
from .engine import ExchangeEngine
from .exceptions import NoDataFoundException
from .keepalive import KeepAlive
from .rate_limiter import RateLimiters
from .retry import RetryPolicy
from .session_cache import SessionCache, SessionStorage, mask

logger = logging.getLogger(__name__)


class TinkoffClient:
    """Session-managed client for one account."""

    def __init__(
        self,
        settings: Settings,
        credential: Credential,
        confirmation_provider: ConfirmationProvider,
        session_storage: SessionStorage,
        auth_flow: AuthFlow | None = None,
        http_session: Any = None,
        rate_limiters: RateLimiters | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if credential is None:
            raise ValueError("credential is required")
        if confirmation_provider is None:
            raise ValueError("confirmation_provider is required")
        if session_storage is None:
            raise ValueError("session_storage is required")

        self.settings = settings
        self.credential = credential

        if auth_flow is None:
            if settings.TINKOFF_AUTH_MODE == AuthModeOption.BROWSER:
                auth_flow = BrowserAuthFlow.from_settings(settings, credential, confirmation_provider)
            else:
                auth_flow = ApiAuthFlow(credential, confirmation_provider)

        self._owns_http_session = http_session is None
        if http_session is None:
            http_session = AsyncSession(
                impersonate=settings.TINKOFF_IMPERSONATE,
                timeout=settings.TINKOFF_REQUEST_TIMEOUT,
            )
        self._http_session = http_session

        self.session_cache = SessionCache(session_storage)
        self.engine = ExchangeEngine(
            settings,
            identity=credential.phone,
            session_cache=self.session_cache,
            auth_flow=auth_flow,
            http_session=http_session,
            rate_limiters=rate_limiters or RateLimiters.from_settings(settings),
            retry_policy=retry_policy,
        )
        self.keepalive = KeepAlive(self.engine, interval=settings.TINKOFF_KEEPALIVE_INTERVAL)

    async def start(self) -> None:
        if self.settings.TINKOFF_KEEPALIVE_ENABLED:
            self.keepalive.start()
        logger.info(f"Tinkoff client started for {mask(self.credential.phone)}")

    async def close(self) -> None:
        await self.keepalive.stop()
        if self._owns_http_session:
            await self._http_session.close()
        logger.info(f"Tinkoff client closed for {mask(self.credential.phone)}")

    async def __aenter__(self) -> "TinkoffClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Common API
    # ------------------------------------------------------------------

    async def accounts_light_ib(self) -> list[Account]:
        return await self.engine.execute(AccountsLightIbIn())

    async def operations(self, request: OperationsIn) -> list[Operation]:
        """Operations of an account; empty when the provider has none."""
        try:
            return await self.engine.execute(request)
        except NoDataFoundException:
            return []

    async def shopping_receipt(self, request: ShoppingReceiptIn) -> ShoppingReceiptOut | None:
        """Receipt of an operation; None when the operation has no receipt."""
        try:
            return await self.engine.execute(request)
        except NoDataFoundException:
            return None

    # ------------------------------------------------------------------
    # Invest API
    # ------------------------------------------------------------------

    async def invest_operation_types(self) -> InvestOperationTypesOut:
        return await self.engine.execute(InvestOperationTypesIn())

    async def invest_accounts(self, request: InvestAccountsIn) -> InvestAccountsOut:
        return await self.engine.execute(request)

    async def invest_operations(self, request: InvestOperationsIn) -> InvestOperationsOut:
        return await self.engine.execute(request)

"""
Exchange Engine - executes call descriptors against both API surfaces.

Common surface (CommonExchange):
    POST {base_url}{path}?origin=...&sessionid=...   (form-encoded body)
    200 -> {resultCode, errorMessage, payload, operationTicket}

    resultCode == expected          -> decoded payload
    NO_DATA_FOUND                   -> NoDataFoundException, never retried
    REQUEST_RATE_LIMIT_EXCEEDED     -> rate_limit strategy (bounded)
    INSUFFICIENT_PRIVILEGES         -> authorize once, reauth strategy (1 retry)
    anything else                   -> ResultCodeException
    non-200 / connection failure    -> transport strategy (unbounded)

Invest surface (InvestExchange):
    GET {base_url}{path}?...&sessionId=...   (X-App-Name / X-App-Version headers)
    200     -> bare payload
    4xx/5xx -> {errorMessage, errorCode}; errorCode "404" may be an expired
               session, so the session is probed and, if the probe fails,
               re-established once.

Every call that needs a session holds the engine lock for its whole
sequence, retries and re-authentication included. The lock is re-entered
through the CallContext, so nested calls from the same chain never wait
on themselves.
"""

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from curl_cffi import CurlError
from pydantic import ValidationError

from ..schemas.common import PingIn
from .exceptions import (
    AuthFlowException,
    InvestApiException,
    NoDataFoundException,
    ResultCodeException,
    TinkoffException,
    TransportException,
    UnauthorizedException,
    ellipsis,
)
from .exchange import Auth, CommonExchange, CommonResponse, Exchange, InvestErrorBody, InvestExchange
from .locking import CallContext, ContextLock
from .rate_limiter import RateLimiters
from .retry import RetryPolicy, RetryStrategy
from .session_cache import Session, SessionCache, mask

if TYPE_CHECKING:
    from ..core.config import Settings
    from .auth.base import AuthFlow

logger = logging.getLogger(__name__)

NO_DATA_FOUND = "NO_DATA_FOUND"
REQUEST_RATE_LIMIT_EXCEEDED = "REQUEST_RATE_LIMIT_EXCEEDED"
INSUFFICIENT_PRIVILEGES = "INSUFFICIENT_PRIVILEGES"

INVEST_NOT_FOUND = "404"
CLIENT_ACCESS_LEVEL = "CLIENT"


class ExchangeEngine:
    """Executes descriptors with session resolution, rate limiting and recovery."""

    def __init__(
        self,
        settings: "Settings",
        identity: str,
        session_cache: SessionCache,
        auth_flow: "AuthFlow",
        http_session: Any,
        rate_limiters: RateLimiters | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._settings = settings
        self.identity = identity
        self._cache = session_cache
        self._auth_flow = auth_flow
        self._http = http_session
        self._rate_limiters = rate_limiters or RateLimiters()
        self._retry = retry_policy or RetryPolicy.from_settings(settings)
        self.lock = ContextLock("session")

        self._base_url = settings.TINKOFF_BASE_URL.rstrip("/")
        self._invest_headers = {
            "X-App-Name": settings.TINKOFF_INVEST_APP_NAME,
            "X-App-Version": settings.TINKOFF_INVEST_APP_VERSION,
        }

    async def execute(self, exchange: Exchange, ctx: CallContext | None = None) -> Any:
        """Execute a descriptor and return its decoded payload."""
        ctx = ctx or CallContext()
        if isinstance(exchange, InvestExchange):
            return await self._execute_invest(exchange, ctx)
        if isinstance(exchange, CommonExchange):
            return await self._execute_common(exchange, ctx)
        raise TypeError(f"unsupported exchange {type(exchange).__name__}")

    # ------------------------------------------------------------------
    # Session resolution
    # ------------------------------------------------------------------

    async def _session_id(self, auth: Auth, ctx: CallContext, path: str) -> str:
        # A login in progress carries its not-yet-stored session in the context
        if ctx.session is not None:
            return ctx.session.id

        session = await self._cache.resolve(self.identity)
        if session is not None:
            return session.id

        if auth == Auth.CHECK:
            raise UnauthorizedException(path=path)

        session = await self.authorize(ctx)
        return session.id

    async def authorize(self, ctx: CallContext | None = None) -> Session:
        """Run the auth flow and make its session canonical.

        On failure the cached session is invalidated and the error is raised
        as AuthFlowException. Cancellation propagates unchanged.
        """
        ctx = ctx or CallContext()
        async with self.lock.acquire(ctx) as ctx:
            logger.info(f"Authorizing {mask(self.identity)} via {type(self._auth_flow).__name__}")
            try:
                session = await self._auth_flow.authorize(self, ctx.fork())
            except AuthFlowException:
                await self._cache.invalidate(self.identity)
                raise
            except Exception as e:
                await self._cache.invalidate(self.identity)
                raise AuthFlowException(f"authorize: {e}") from e

            await self._cache.store(self.identity, session)
            logger.info(f"Authorized {mask(self.identity)}")
            return session

    async def probe(self, ctx: CallContext | None = None) -> bool:
        """Check that the cached session still has client access.

        Returns False when no session is cached, or when the access level is
        degraded (the session is invalidated then). Other errors propagate.
        """
        try:
            out = await self.execute(PingIn(), ctx)
        except UnauthorizedException:
            return False

        if out.access_level != CLIENT_ACCESS_LEVEL:
            logger.info(f"Access level degraded to '{out.access_level}', resetting session")
            await self._cache.invalidate(self.identity)
            return False

        return True

    async def invalidate(self) -> None:
        await self._cache.invalidate(self.identity)

    # ------------------------------------------------------------------
    # Common surface
    # ------------------------------------------------------------------

    async def _execute_common(self, exchange: CommonExchange, ctx: CallContext) -> Any:
        if exchange.auth == Auth.NONE:
            return await self._attempt_common(exchange, ctx, None)

        async with self.lock.acquire(ctx) as ctx:
            session_id = await self._session_id(exchange.auth, ctx, exchange.path)
            return await self._attempt_common(exchange, ctx, session_id)

    async def _attempt_common(self, exchange: CommonExchange, ctx: CallContext, session_id: str | None) -> Any:
        path = exchange.path
        query = {"origin": self._settings.TINKOFF_ORIGIN}
        if session_id:
            query["sessionid"] = session_id

        error: TinkoffException
        strategy: RetryStrategy | None = None

        async with self._rate_limiters.acquire(path):
            logger.debug(f"POST {path}")
            try:
                response = await self._http.post(
                    self._base_url + path,
                    params=query,
                    data=urlencode(exchange.params()),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    timeout=self._settings.TINKOFF_REQUEST_TIMEOUT,
                )
            except CurlError as e:
                error = TransportException(f"execute request: {e}", path=path)
                strategy = self._retry.transport()
            else:
                if response.status_code != 200:
                    error = TransportException(
                        f"HTTP {response.status_code}",
                        path=path,
                        status_code=response.status_code,
                        body=ellipsis(response.content or b""),
                    )
                    strategy = self._retry.transport()
                else:
                    envelope = self._decode_envelope(response, path)
                    if envelope.result_code == exchange.expected_result_code:
                        try:
                            return exchange.decode(envelope)
                        except ValidationError as e:
                            raise TransportException(f"decode payload: {e}", path=path) from e

                    error = ResultCodeException(
                        expected=exchange.expected_result_code,
                        actual=envelope.result_code,
                        error_message=envelope.error_message,
                        path=path,
                    )

                    if envelope.result_code == NO_DATA_FOUND:
                        raise NoDataFoundException(path=path)
                    elif envelope.result_code == REQUEST_RATE_LIMIT_EXCEEDED:
                        strategy = self._retry.rate_limit()
                    elif envelope.result_code == INSUFFICIENT_PRIVILEGES:
                        strategy = self._retry.reauth()

        # The rate-limit permit is released before any waiting below
        if strategy is None:
            raise error

        if strategy.name == "reauth":
            # No nested login from inside a login, and only one per chain
            if strategy.exhausted(ctx) or ctx.session is not None:
                raise error
            await self.authorize(ctx)

        next_ctx = await strategy.wait(ctx)
        if next_ctx is None:
            raise error

        logger.warning(f"Retrying {path} after: {error}")
        return await self._execute_common(exchange, next_ctx)

    def _decode_envelope(self, response: Any, path: str) -> CommonResponse:
        try:
            return CommonResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise TransportException(
                f"decode response body: {e.error_count()} error(s)",
                path=path,
                status_code=response.status_code,
                body=ellipsis(response.content or b""),
            ) from e

    # ------------------------------------------------------------------
    # Invest surface
    # ------------------------------------------------------------------

    async def _execute_invest(self, exchange: InvestExchange, ctx: CallContext) -> Any:
        path = exchange.path
        async with self.lock.acquire(ctx) as ctx:
            session_id = await self._session_id(Auth.FORCE, ctx, path)
            params = {**exchange.params(), "sessionId": session_id}

            logger.debug(f"GET {path}")
            try:
                response = await self._http.get(
                    self._base_url + path,
                    params=params,
                    headers=self._invest_headers,
                    timeout=self._settings.TINKOFF_REQUEST_TIMEOUT,
                )
            except CurlError as e:
                raise TransportException(f"execute request: {e}", path=path) from e

            status = response.status_code
            if status == 200:
                try:
                    return exchange.decode(response.content)
                except ValidationError as e:
                    raise TransportException(
                        f"unmarshal response body: {e.error_count()} error(s)",
                        path=path,
                        status_code=status,
                        body=ellipsis(response.content or b""),
                    ) from e

            if not 400 <= status < 600:
                raise TransportException(f"HTTP {status}", path=path, status_code=status)

            try:
                body = InvestErrorBody.model_validate_json(response.content)
            except ValidationError as e:
                raise TransportException(
                    f"HTTP {status}",
                    path=path,
                    status_code=status,
                    body=ellipsis(response.content or b""),
                ) from e

            error = InvestApiException(body.error_message, body.error_code, path=path, status_code=status)
            if body.error_code != INVEST_NOT_FOUND:
                raise error

            # Heuristic: a generic not-found may also mean an expired session
            if await self.probe(ctx.fork()):
                raise error

            next_ctx = await self._retry.reauth().wait(ctx)
            if next_ctx is None:
                raise error

            logger.info(f"Session expired on {path}, re-authorizing")
            await self.authorize(next_ctx)
            return await self._execute_invest(exchange, next_ctx)

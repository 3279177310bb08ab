"""
Browser-driven login.

Used when the programmatic login is blocked. The login page is rendered in
a real browser and handled as a state machine over a closed set of steps:

    PHONE_INPUT      -> type phone + ENTER
    PASSWORD_INPUT   -> type password + ENTER
    OTP_INPUT        -> type the confirmation code
    CANCEL_BUTTON    -> click (dismisses the "set an access code" prompt)
    LOGIN_COMPLETE   -> read the session cookie

All steps start pending. Each detect phase polls every pending step (the
page may show them in any order) until one is visible, handles it and
removes it from the pending set. The flow ends when LOGIN_COMPLETE is
handled.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..exceptions import AuthFlowException
from ..session_cache import Session, mask
from .base import AuthFlow, ConfirmationProvider, Credential
from .browser_driver import BrowserDriver, SeleniumBrowserDriver

if TYPE_CHECKING:
    from ...core.config import Settings
    from ..engine import ExchangeEngine
    from ..locking import CallContext

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_URL = "https://www.tinkoff.ru/auth/login"
DEFAULT_SESSION_COOKIE = "api_session"


class BrowserAuthStep(Enum):
    """Login page step and the XPath that reveals it."""

    PHONE_INPUT = "//input[@automation-id='phone-input']"
    PASSWORD_INPUT = "//input[@automation-id='password-input']"
    OTP_INPUT = "//input[@automation-id='otp-input']"
    CANCEL_BUTTON = "//button[@automation-id='cancel-button']"
    LOGIN_COMPLETE = "//div[@automation-id='conversations-list']"

    @property
    def locator(self) -> str:
        return self.value

    @property
    def step_name(self) -> str:
        return self.name.lower()


class BrowserAuthFlow(AuthFlow):
    def __init__(
        self,
        credential: Credential,
        confirmation_provider: ConfirmationProvider,
        driver_factory: Callable[[], BrowserDriver],
        login_url: str = DEFAULT_LOGIN_URL,
        poll_interval: float = 0.5,
        step_timeout: float = 120.0,
        cookie_name: str = DEFAULT_SESSION_COOKIE,
    ) -> None:
        super().__init__(credential, confirmation_provider)
        self.driver_factory = driver_factory
        self.login_url = login_url
        self.poll_interval = poll_interval
        self.step_timeout = step_timeout
        self.cookie_name = cookie_name

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        credential: Credential,
        confirmation_provider: ConfirmationProvider,
    ) -> "BrowserAuthFlow":
        return cls(
            credential,
            confirmation_provider,
            driver_factory=lambda: SeleniumBrowserDriver.from_settings(settings),
            login_url=settings.TINKOFF_LOGIN_URL,
            poll_interval=settings.TINKOFF_BROWSER_POLL_INTERVAL,
            step_timeout=settings.TINKOFF_BROWSER_STEP_TIMEOUT,
            cookie_name=settings.TINKOFF_SESSION_COOKIE,
        )

    async def authorize(self, engine: "ExchangeEngine", ctx: "CallContext") -> Session:
        driver = self.driver_factory()
        try:
            try:
                await driver.open(self.login_url)
            except Exception as e:
                raise AuthFlowException(f"open login page: {e}", step="open") from e

            pending = set(BrowserAuthStep)
            session: Session | None = None
            while session is None:
                step, element = await self._detect(driver, pending)
                logger.info(f"Login step visible: {step.step_name}")
                session = await self._handle(driver, step, element)
                pending.discard(step)

            logger.info(f"Browser login completed for {mask(self.credential.phone)}: {session!r}")
            return session
        finally:
            try:
                await driver.close()
            except Exception as e:
                logger.warning(f"Failed to close browser driver: {e}")

    async def _detect(self, driver: BrowserDriver, pending: set[BrowserAuthStep]) -> tuple[BrowserAuthStep, Any]:
        """Poll until any pending step is visible. Cancellable."""
        try:
            async with asyncio.timeout(self.step_timeout):
                while True:
                    for step in BrowserAuthStep:
                        if step not in pending:
                            continue
                        try:
                            element = await driver.find_visible(step.locator)
                        except Exception as e:
                            raise AuthFlowException(f"find '{step.locator}': {e}", step="detect") from e
                        if element is not None:
                            return step, element
                    await asyncio.sleep(self.poll_interval)
        except TimeoutError as e:
            remaining = ", ".join(sorted(step.step_name for step in pending))
            raise AuthFlowException(
                f"no login step visible within {self.step_timeout}s (pending: {remaining})",
                step="detect",
            ) from e

    async def _handle(self, driver: BrowserDriver, step: BrowserAuthStep, element: Any) -> Session | None:
        """Perform the step action. Returns the session on LOGIN_COMPLETE."""
        if step == BrowserAuthStep.OTP_INPUT:
            code = await self.get_confirmation_code()
        else:
            code = None

        try:
            if step == BrowserAuthStep.PHONE_INPUT:
                await driver.type_text(element, self.credential.phone, submit=True)
            elif step == BrowserAuthStep.PASSWORD_INPUT:
                await driver.type_text(element, self.credential.password, submit=True)
            elif step == BrowserAuthStep.OTP_INPUT:
                await driver.type_text(element, code)
            elif step == BrowserAuthStep.CANCEL_BUTTON:
                await driver.click(element)
            elif step == BrowserAuthStep.LOGIN_COMPLETE:
                session_id = await driver.get_cookie(self.cookie_name)
                if not session_id:
                    raise AuthFlowException(f"cookie '{self.cookie_name}' not found", step=step.step_name)
                return Session(id=session_id)
        except AuthFlowException:
            raise
        except Exception as e:
            raise AuthFlowException(f"handle '{step.locator}': {e}", step=step.step_name) from e

        return None

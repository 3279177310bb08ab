"""
Remote browser driver used by the browser-driven login.

SeleniumBrowserDriver wraps a SeleniumBase Driver (local Chrome, or a
Selenium Grid when a server is configured). Selenium calls are blocking,
so each one runs on a dedicated thread pool; every failure surfaces as
BrowserDriverException.
"""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys

from ..exceptions import BrowserDriverException

if TYPE_CHECKING:
    from ...core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BrowserDriver(Protocol):
    """Async browser operations needed by the login state machine."""

    async def open(self, url: str) -> None: ...

    async def find_visible(self, locator: str) -> Any | None:
        """Return a displayed element matching the XPath locator, if any."""
        ...

    async def type_text(self, element: Any, text: str, submit: bool = False) -> None: ...

    async def click(self, element: Any) -> None: ...

    async def get_cookie(self, name: str) -> str | None: ...

    async def close(self) -> None: ...


class SeleniumBrowserDriver:
    """
    Async wrapper over a SeleniumBase Driver.

    Usage:
        driver = SeleniumBrowserDriver(server="grid.local", port=4444)
        await driver.open("https://www.tinkoff.ru/auth/login")
        element = await driver.find_visible("//input[@automation-id='phone-input']")
        await driver.close()
    """

    def __init__(
        self,
        browser: str = "chrome",
        server: str | None = None,
        port: int = 4444,
        headless: bool = False,
        uc: bool = True,
        thread_pool: ThreadPoolExecutor | None = None,
    ) -> None:
        self.browser = browser
        self.server = server
        self.port = port
        self.headless = headless
        self.uc = uc
        self._driver: Any = None
        self._thread_pool = thread_pool or ThreadPoolExecutor(max_workers=1)
        self._owns_pool = thread_pool is None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SeleniumBrowserDriver":
        return cls(
            browser=settings.TINKOFF_BROWSER,
            server=settings.TINKOFF_BROWSER_SERVER,
            port=settings.TINKOFF_BROWSER_PORT,
            headless=settings.TINKOFF_BROWSER_HEADLESS,
            uc=settings.TINKOFF_BROWSER_UC,
        )

    async def _run(self, operation: str, fn: Callable[..., T], *args: Any, locator: str | None = None) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._thread_pool, fn, *args)
        except BrowserDriverException:
            raise
        except Exception as e:
            raise BrowserDriverException(f"{operation}: {e}", locator=locator) from e

    def _init_driver_sync(self) -> None:
        from seleniumbase import Driver

        driver_kwargs: dict[str, Any] = {"browser": self.browser, "headless": self.headless}
        if self.server:
            # UC mode patches a local chromedriver and cannot drive a grid
            driver_kwargs.update(servername=self.server, port=str(self.port))
        else:
            driver_kwargs["uc"] = self.uc

        logger.debug(f"Initializing SeleniumBase Driver with: {driver_kwargs}")
        self._driver = Driver(**driver_kwargs)
        self._driver.maximize_window()
        logger.info(f"SeleniumBase Driver started: server={self.server or 'local'}, headless={self.headless}")

    def _open_sync(self, url: str) -> None:
        if self._driver is None:
            self._init_driver_sync()
        self._driver.get(url)

    def _find_visible_sync(self, locator: str) -> Any | None:
        for element in self._driver.find_elements(By.XPATH, locator):
            if element.is_displayed():
                return element
        return None

    @staticmethod
    def _type_text_sync(element: Any, text: str, submit: bool) -> None:
        element.send_keys(text + Keys.ENTER if submit else text)

    @staticmethod
    def _click_sync(element: Any) -> None:
        element.click()

    def _get_cookie_sync(self, name: str) -> str | None:
        cookie = self._driver.get_cookie(name)
        return cookie["value"] if cookie else None

    def _quit_sync(self) -> None:
        if self._driver is not None:
            try:
                self._driver.quit()
            finally:
                self._driver = None

    async def open(self, url: str) -> None:
        await self._run("open", self._open_sync, url)

    async def find_visible(self, locator: str) -> Any | None:
        self._require_driver()
        return await self._run("find elements", self._find_visible_sync, locator, locator=locator)

    async def type_text(self, element: Any, text: str, submit: bool = False) -> None:
        await self._run("send keys", self._type_text_sync, element, text, submit)

    async def click(self, element: Any) -> None:
        await self._run("click", self._click_sync, element)

    async def get_cookie(self, name: str) -> str | None:
        self._require_driver()
        return await self._run("get cookie", self._get_cookie_sync, name)

    async def close(self) -> None:
        """Quit the browser; the driver is unusable afterwards."""
        try:
            await self._run("quit", self._quit_sync)
        finally:
            if self._owns_pool:
                self._thread_pool.shutdown(wait=False)
            logger.debug("SeleniumBase Driver closed")

    def _require_driver(self) -> None:
        if self._driver is None:
            raise BrowserDriverException("browser is not open")

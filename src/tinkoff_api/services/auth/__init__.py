from .api_flow import ApiAuthFlow
from .base import AuthFlow, ConfirmationProvider, Credential
from .browser_driver import BrowserDriver, SeleniumBrowserDriver
from .browser_flow import BrowserAuthFlow, BrowserAuthStep

__all__ = [
    "ApiAuthFlow",
    "AuthFlow",
    "BrowserAuthFlow",
    "BrowserAuthStep",
    "BrowserDriver",
    "ConfirmationProvider",
    "Credential",
    "SeleniumBrowserDriver",
]

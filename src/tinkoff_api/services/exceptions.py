"""Tinkoff API client exceptions.

Hierarchy:
    TinkoffException (base)
    ├── TransportException         - connection failure or unexpected HTTP status
    ├── ResultCodeException        - envelope resultCode differs from the expected one
    ├── NoDataFoundException       - provider reported NO_DATA_FOUND (empty result)
    ├── UnauthorizedException      - no cached session for a CHECK-level call
    ├── InvestApiException         - invest gateway error body {errorMessage, errorCode}
    ├── AuthFlowException          - a login step failed
    ├── BrowserDriverException     - remote browser operation failed
    └── SessionStorageException    - session storage load/update failed

asyncio.CancelledError is never wrapped into any of these.
"""

ELLIPSIS_LIMIT = 200


def ellipsis(text: str | bytes, limit: int = ELLIPSIS_LIMIT) -> str:
    """Truncate a response body for use in error messages."""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class TinkoffException(Exception):
    """Base exception for all Tinkoff client errors."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message


class TransportException(TinkoffException):
    """Raised when the HTTP exchange itself failed.

    Covers connection/DNS errors (status_code is None) and responses with an
    unexpected status or without a decodable body.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message, path)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.body:
            parts.append(f"body={self.body}")
        if self.path:
            parts.append(f"path={self.path}")
        return " | ".join(parts)


class ResultCodeException(TinkoffException):
    """Raised when the envelope carries a result code other than the expected one."""

    def __init__(
        self,
        expected: str,
        actual: str,
        error_message: str = "",
        path: str | None = None,
    ) -> None:
        message = f"{actual} != {expected}"
        if error_message:
            message = f"{message} ({error_message})"
        super().__init__(message, path)
        self.expected = expected
        self.actual = actual
        self.error_message = error_message


class NoDataFoundException(TinkoffException):
    """The provider has nothing for this request.

    This is an empty result, not a failure: client operations translate it
    into an empty list or None.
    """

    def __init__(self, message: str = "no data found", path: str | None = None) -> None:
        super().__init__(message, path)


class UnauthorizedException(TinkoffException):
    """No session is cached and the call does not allow starting a login."""

    def __init__(self, message: str = "no sessionid", path: str | None = None) -> None:
        super().__init__(message, path)


class InvestApiException(TinkoffException):
    """Error body returned by the invest gateway."""

    def __init__(
        self,
        error_message: str,
        error_code: str,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{error_message} ({error_code})", path)
        self.error_message = error_message
        self.error_code = error_code
        self.status_code = status_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.path:
            parts.append(f"path={self.path}")
        return " | ".join(parts)


class AuthFlowException(TinkoffException):
    """Raised when a login step fails. `step` names the failed step."""

    def __init__(self, message: str, step: str | None = None, path: str | None = None) -> None:
        super().__init__(message, path)
        self.step = step

    def __str__(self) -> str:
        base = super().__str__()
        if self.step:
            return f"{self.step}: {base}"
        return base


class BrowserDriverException(TinkoffException):
    """Raised when the remote browser fails to perform an operation."""

    def __init__(self, message: str, locator: str | None = None) -> None:
        super().__init__(message)
        self.locator = locator

    def __str__(self) -> str:
        if self.locator:
            return f"{self.message} (locator: {self.locator})"
        return self.message


class SessionStorageException(TinkoffException):
    """Raised when the session storage cannot load or update a session."""

    def __init__(self, message: str, identity: str | None = None) -> None:
        super().__init__(message)
        self.identity = identity

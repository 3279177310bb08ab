"""Auth flow contract and its collaborators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from ..exceptions import AuthFlowException
from ..session_cache import mask

if TYPE_CHECKING:
    from ..engine import ExchangeEngine
    from ..locking import CallContext
    from ..session_cache import Session


@dataclass(frozen=True)
class Credential:
    """Login identity and secret, fixed for the lifetime of a client."""

    phone: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.phone:
            raise ValueError("phone is required")
        if not self.password:
            raise ValueError("password is required")

    def __repr__(self) -> str:
        return f"Credential(phone={mask(self.phone)})"


class ConfirmationProvider(Protocol):
    """Supplies the one-time code sent to the phone (may wait on a human)."""

    async def get_confirmation_code(self, phone: str) -> str: ...


class AuthFlow(ABC):
    """Establishes a new session for the engine's credential."""

    def __init__(self, credential: Credential, confirmation_provider: ConfirmationProvider) -> None:
        self.credential = credential
        self.confirmation_provider = confirmation_provider

    @abstractmethod
    async def authorize(self, engine: "ExchangeEngine", ctx: "CallContext") -> "Session":
        """Run the login and return the new session. Raises AuthFlowException."""

    async def get_confirmation_code(self) -> str:
        try:
            code = await self.confirmation_provider.get_confirmation_code(self.credential.phone)
        except Exception as e:
            raise AuthFlowException(f"get confirmation code: {e}", step="confirmation_code") from e

        if not code:
            raise AuthFlowException("empty confirmation code", step="confirmation_code")
        return code

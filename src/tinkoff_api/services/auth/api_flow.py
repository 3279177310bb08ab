"""
Programmatic login through the common API surface.

Sequence:
1. /common/v1/session            (NONE)  -> new session id
2. /common/v1/sign_up   phone    (CHECK) -> WAITING_CONFIRMATION + ticket
3. /common/v1/confirm   SMS code (CHECK)
4. /common/v1/sign_up   password (CHECK)
5. /common/v1/level_up           (CHECK)

The new session is carried in the CallContext for steps 2-5 and is only
stored by the engine once the whole sequence succeeds.
"""

import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

from ...schemas.common import (
    ConfirmationData,
    ConfirmIn,
    LevelUpIn,
    PasswordSignUpIn,
    PhoneSignUpIn,
    SessionIn,
)
from ..exceptions import AuthFlowException
from ..session_cache import Session, mask
from .base import AuthFlow

if TYPE_CHECKING:
    from ..engine import ExchangeEngine
    from ..locking import CallContext

logger = logging.getLogger(__name__)


class ApiAuthFlow(AuthFlow):
    async def authorize(self, engine: "ExchangeEngine", ctx: "CallContext") -> Session:
        phone = self.credential.phone

        session_id = await self._step("session", engine.execute(SessionIn(), ctx))
        if not session_id:
            raise AuthFlowException("empty session id", step="session")

        session = Session(id=session_id)
        ctx = ctx.with_session(session)
        logger.info(f"New session for {mask(phone)}: {session!r}")

        ticket = await self._step("phone_sign_up", engine.execute(PhoneSignUpIn(phone=phone), ctx))
        code = await self.get_confirmation_code()
        await self._step(
            "confirm",
            engine.execute(
                ConfirmIn(
                    initial_operation_ticket=ticket,
                    confirmation_data=ConfirmationData(SMSBYID=code),
                ),
                ctx,
            ),
        )

        await self._step("password_sign_up", engine.execute(PasswordSignUpIn(password=self.credential.password), ctx))
        await self._step("level_up", engine.execute(LevelUpIn(), ctx))

        logger.info(f"Login completed for {mask(phone)}")
        return session

    @staticmethod
    async def _step(step: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except AuthFlowException:
            raise
        except Exception as e:
            raise AuthFlowException(str(e), step=step) from e

"""
Call context and context-scoped reentrant locking.

Every exchange carries an immutable CallContext. Acquiring a ContextLock
yields a derived context that holds the lock's ownership token; a nested
acquisition made with that context (a retry or a re-authentication
inside the same call chain) passes through instead of waiting on itself.

The context also carries the retry attempt counters of the chain and,
while a login is in progress, the session being established.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session_cache import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """Immutable per-call-chain state."""

    held_locks: frozenset[object] = frozenset()
    attempts: dict[str, int] = field(default_factory=dict)
    session: "Session | None" = None

    def with_lock(self, token: object) -> "CallContext":
        return replace(self, held_locks=self.held_locks | {token})

    def with_attempt(self, name: str, attempt: int) -> "CallContext":
        return replace(self, attempts={**self.attempts, name: attempt})

    def with_session(self, session: "Session") -> "CallContext":
        return replace(self, session=session)

    def fork(self) -> "CallContext":
        """Context for a nested sub-call: same lock ownership, fresh counters."""
        return CallContext(held_locks=self.held_locks)

    def attempt(self, name: str) -> int:
        return self.attempts.get(name, 0)


class ContextLock:
    """Exclusive lock whose ownership travels with the CallContext."""

    def __init__(self, name: str = "session") -> None:
        self.name = name
        self._lock = asyncio.Lock()
        self._token = object()

    def held_by(self, ctx: CallContext) -> bool:
        return self._token in ctx.held_locks

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def acquire(self, ctx: CallContext) -> AsyncIterator[CallContext]:
        """Acquire the lock for a call chain.

        Usage:
            async with lock.acquire(ctx) as ctx:
                ...  # ctx now owns the lock
        """
        if self.held_by(ctx):
            yield ctx
            return

        async with self._lock:
            logger.debug(f"Lock '{self.name}' acquired")
            try:
                yield ctx.with_lock(self._token)
            finally:
                logger.debug(f"Lock '{self.name}' released")

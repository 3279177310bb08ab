"""
Session Cache for the Tinkoff client.

Write-through cache over an external session storage, keyed by account
identity (phone number).

Workflow:
1. First resolve() for an identity loads it from storage (single-flight)
2. Later resolves are served from memory; storage is not consulted again
3. store()/invalidate() write to storage first, then update memory

Invalidation stores "no session" (None) rather than dropping the entry, so
a later resolve() does not re-read a stale token from storage.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Protocol

from .exceptions import SessionStorageException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Opaque session token issued by the provider."""

    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        return cls(id=data["id"])

    def __repr__(self) -> str:
        return f"Session(id={mask(self.id)})"


def mask(value: str | None, visible: int = 4) -> str:
    """Hide all but the last characters of a secret for logging."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


class SessionStorage(Protocol):
    """Persistence collaborator for sessions."""

    async def load_session(self, phone: str) -> Session | None: ...

    async def update_session(self, phone: str, session: Session | None) -> None: ...


class SessionCache:
    """Identity-scoped write-through session cache."""

    def __init__(self, storage: SessionStorage) -> None:
        self._storage = storage
        self._values: dict[str, Session | None] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def resolve(self, identity: str) -> Session | None:
        """Return the canonical session for an identity, loading it once."""
        if identity in self._values:
            return self._values[identity]

        async with self._locks[identity]:
            if identity in self._values:
                return self._values[identity]

            try:
                session = await self._storage.load_session(identity)
            except SessionStorageException:
                raise
            except Exception as e:
                raise SessionStorageException(f"load session: {e}", identity=mask(identity)) from e

            self._values[identity] = session
            logger.debug(f"Session cache loaded for {mask(identity)}: {'HIT' if session else 'MISS'}")
            return session

    async def store(self, identity: str, session: Session | None) -> None:
        """Write a session through to storage and make it canonical."""
        async with self._locks[identity]:
            try:
                await self._storage.update_session(identity, session)
            except SessionStorageException:
                raise
            except Exception as e:
                raise SessionStorageException(f"update session: {e}", identity=mask(identity)) from e

            self._values[identity] = session

        if session is None:
            logger.info(f"Session invalidated for {mask(identity)}")
        else:
            logger.info(f"Session stored for {mask(identity)}: {session!r}")

    async def invalidate(self, identity: str) -> None:
        await self.store(identity, None)

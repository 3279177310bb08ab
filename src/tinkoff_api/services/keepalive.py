"""
Keep-alive loop.

Once per interval, probes the cached session under the engine lock. A
degraded access level invalidates the session (done by the probe) so the
next real call logs in again. Any other probe failure is logged and
ignored; a network blip must not discard a valid session.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from .locking import CallContext

if TYPE_CHECKING:
    from .engine import ExchangeEngine

logger = logging.getLogger(__name__)


class KeepAlive:
    def __init__(self, engine: "ExchangeEngine", interval: float = 60.0) -> None:
        self.engine = engine
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="tinkoff-keepalive")
        logger.debug(f"Keep-alive started (interval: {self.interval}s)")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Keep-alive stopped")

    async def tick(self) -> bool | None:
        """Probe once. Returns the probe result, or None if the probe failed."""
        try:
            async with self.engine.lock.acquire(CallContext()) as ctx:
                return await self.engine.probe(ctx)
        except Exception as e:
            logger.warning(f"Keep-alive probe failed: {e}")
            return None

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)

"""
Per-endpoint rate limiting.

Each sensitive endpoint path maps to a CompositeLimiter built from
independent constituents. A permit is granted only when every constituent
admits the call at the same instant; admission is checked and committed
synchronously (no await in between), so it is atomic on the event loop.

Paths without a declared limiter get a permit that is granted immediately.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class WindowLimiter:
    """At most `limit` admissions within any sliding `window` seconds."""

    def __init__(self, limit: int, window: float, clock: Clock = time.monotonic) -> None:
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self.limit = limit
        self.window = window
        self._clock = clock
        self._admitted: deque[float] = deque()

    def _evict(self, now: float) -> None:
        while self._admitted and self._admitted[0] <= now - self.window:
            self._admitted.popleft()

    def delay(self, now: float) -> float | None:
        """Seconds until the next admission is possible (0 = admits now)."""
        self._evict(now)
        if len(self._admitted) < self.limit:
            return 0.0
        return self._admitted[0] + self.window - now

    def commit(self, now: float) -> None:
        self._admitted.append(now)

    def release(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"WindowLimiter({self.limit}/{self.window}s)"


class ConcurrencyLimiter:
    """At most `limit` permits in flight at once."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self.limit = limit
        self._active = 0

    def delay(self, now: float) -> float | None:
        # None: admission depends on a release, not on time
        return 0.0 if self._active < self.limit else None

    def commit(self, now: float) -> None:
        self._active += 1

    def release(self) -> None:
        self._active = max(self._active - 1, 0)

    def __repr__(self) -> str:
        return f"ConcurrencyLimiter({self.limit})"


class CompositeLimiter:
    """Logical AND of its constituent limiters."""

    def __init__(
        self,
        limiters: Iterable[WindowLimiter | ConcurrencyLimiter],
        clock: Clock = time.monotonic,
        poll_interval: float = 0.05,
    ) -> None:
        self.limiters = list(limiters)
        self._clock = clock
        self._poll_interval = poll_interval

    def try_acquire(self) -> bool:
        """Admit the call if, and only if, all constituents admit it now."""
        now = self._clock()
        if all(limiter.delay(now) == 0 for limiter in self.limiters):
            for limiter in self.limiters:
                limiter.commit(now)
            return True
        return False

    def next_delay(self) -> float:
        now = self._clock()
        delays = [d for d in (limiter.delay(now) for limiter in self.limiters) if d]
        return min(delays) if delays else self._poll_interval

    def release(self) -> None:
        for limiter in self.limiters:
            limiter.release()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[None]:
        """Wait (cancellably) for a permit; the permit is released on exit."""
        while not self.try_acquire():
            delay = self.next_delay()
            logger.debug(f"Rate limited, waiting {delay:.2f}s ({self.limiters})")
            await asyncio.sleep(delay)
        try:
            yield
        finally:
            self.release()


@asynccontextmanager
async def _unrestricted() -> AsyncIterator[None]:
    yield


class RateLimiters:
    """Endpoint path -> composite limiter table."""

    def __init__(self, limiters: Mapping[str, CompositeLimiter] | None = None) -> None:
        self._limiters = dict(limiters or {})

    @classmethod
    def from_settings(cls, settings, clock: Clock = time.monotonic) -> "RateLimiters":
        return cls(
            {
                path: CompositeLimiter([WindowLimiter(limit, window, clock) for limit, window in windows], clock)
                for path, windows in settings.TINKOFF_RATE_LIMITS.items()
            }
        )

    def acquire(self, path: str):
        """Async context manager holding the permit for `path`."""
        limiter = self._limiters.get(path)
        if limiter is None:
            return _unrestricted()
        return limiter.acquire()

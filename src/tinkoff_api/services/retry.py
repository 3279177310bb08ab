"""
Retry strategies with cancellable backoff.

A strategy does not own its attempt counter: the counter is stored in the
CallContext under the strategy name, so two unrelated calls never share it
while the recursive retries of one call do.

    strategy = RetryStrategy("transport", exponential_backoff(1.0, 2.0, 0.5), max_retries=-1)
    next_ctx = await strategy.wait(ctx)
    if next_ctx is None:
        raise original_error  # retries exhausted
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .locking import CallContext

logger = logging.getLogger(__name__)

Backoff = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]

MAX_EXPONENT = 64


def constant_backoff(seconds: float) -> Backoff:
    """Same delay for every attempt."""

    def backoff(attempt: int) -> float:
        return seconds

    return backoff


def exponential_backoff(base: float, factor: float, jitter: float, max_delay: float | None = None) -> Backoff:
    """base * factor**attempt, scaled by a random factor in [1 - jitter, 1 + jitter].

    The result never exceeds max_delay. The exponent stops growing at
    MAX_EXPONENT, so arbitrarily long unbounded chains stay finite.
    """

    def backoff(attempt: int) -> float:
        delay = base * factor ** min(attempt, MAX_EXPONENT)
        delay *= random.uniform(1 - jitter, 1 + jitter)
        if max_delay is not None:
            delay = min(delay, max_delay)
        return delay

    return backoff


class RetryStrategy:
    """Backoff generator plus a bounded (or unbounded, max_retries < 0) attempt count."""

    def __init__(
        self,
        name: str,
        backoff: Backoff,
        max_retries: int,
        sleep: Sleep | None = None,
    ) -> None:
        self.name = name
        self.backoff = backoff
        self.max_retries = max_retries
        self._sleep = sleep or asyncio.sleep

    def exhausted(self, ctx: CallContext) -> bool:
        return self.max_retries >= 0 and ctx.attempt(self.name) >= self.max_retries

    async def wait(self, ctx: CallContext) -> CallContext | None:
        """Sleep before the next attempt.

        Returns the context for the next attempt, or None when the attempts
        are exhausted. Cancellation during the sleep propagates unchanged.
        """
        attempt = ctx.attempt(self.name)
        if self.exhausted(ctx):
            logger.debug(f"Retry '{self.name}' exhausted after {attempt} attempt(s)")
            return None

        delay = max(self.backoff(attempt), 0.0)
        if delay:
            logger.warning(f"Retry '{self.name}' #{attempt + 1} in {delay:.2f}s")
        await self._sleep(delay)
        return ctx.with_attempt(self.name, attempt + 1)


@dataclass
class RetryPolicy:
    """Factory for the strategies used by the exchange engine."""

    transport_base: float = 1.0
    transport_factor: float = 2.0
    transport_jitter: float = 0.5
    transport_max_delay: float = 300.0

    rate_limit_base: float = 60.0
    rate_limit_factor: float = 2.0
    rate_limit_jitter: float = 0.2
    rate_limit_max_delay: float = 1800.0
    rate_limit_max_retries: int = 5

    reauth_delay: float = 0.0

    sleep: Sleep | None = None

    @classmethod
    def from_settings(cls, settings, sleep: Sleep | None = None) -> "RetryPolicy":
        return cls(
            transport_base=settings.TINKOFF_RETRY_TRANSPORT_BASE,
            transport_factor=settings.TINKOFF_RETRY_TRANSPORT_FACTOR,
            transport_jitter=settings.TINKOFF_RETRY_TRANSPORT_JITTER,
            transport_max_delay=settings.TINKOFF_RETRY_TRANSPORT_MAX_DELAY,
            rate_limit_base=settings.TINKOFF_RETRY_RATE_LIMIT_BASE,
            rate_limit_factor=settings.TINKOFF_RETRY_RATE_LIMIT_FACTOR,
            rate_limit_jitter=settings.TINKOFF_RETRY_RATE_LIMIT_JITTER,
            rate_limit_max_delay=settings.TINKOFF_RETRY_RATE_LIMIT_MAX_DELAY,
            rate_limit_max_retries=settings.TINKOFF_RETRY_RATE_LIMIT_MAX,
            reauth_delay=settings.TINKOFF_RETRY_REAUTH_DELAY,
            sleep=sleep,
        )

    def transport(self) -> RetryStrategy:
        return RetryStrategy(
            "transport",
            exponential_backoff(
                self.transport_base, self.transport_factor, self.transport_jitter, self.transport_max_delay
            ),
            max_retries=-1,
            sleep=self.sleep,
        )

    def rate_limit(self) -> RetryStrategy:
        return RetryStrategy(
            "rate_limit",
            exponential_backoff(
                self.rate_limit_base, self.rate_limit_factor, self.rate_limit_jitter, self.rate_limit_max_delay
            ),
            max_retries=self.rate_limit_max_retries,
            sleep=self.sleep,
        )

    def reauth(self) -> RetryStrategy:
        return RetryStrategy("reauth", constant_backoff(self.reauth_delay), max_retries=1, sleep=self.sleep)

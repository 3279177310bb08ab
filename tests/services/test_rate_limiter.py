"""Tests for window, concurrency and composite rate limiters."""

import asyncio

import pytest

from tinkoff_api.services.rate_limiter import (
    CompositeLimiter,
    ConcurrencyLimiter,
    RateLimiters,
    WindowLimiter,
)


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestWindowLimiter:
    def test_admits_up_to_limit(self) -> None:
        limiter = WindowLimiter(2, 10.0)
        assert limiter.delay(0.0) == 0
        limiter.commit(0.0)
        limiter.commit(1.0)
        assert limiter.delay(2.0) == pytest.approx(8.0)

    def test_window_slides(self) -> None:
        limiter = WindowLimiter(1, 10.0)
        limiter.commit(0.0)
        assert limiter.delay(9.9) > 0
        assert limiter.delay(10.0) == 0

    def test_rejects_non_positive_limit(self) -> None:
        with pytest.raises(ValueError):
            WindowLimiter(0, 1.0)


class TestCompositeLimiter:
    def test_admits_only_when_all_admit(self) -> None:
        """Admitting one constituent but not the other never grants a permit."""
        clock = FakeClock()
        open_window = WindowLimiter(5, 60.0, clock)
        full_window = WindowLimiter(1, 60.0, clock)
        full_window.commit(0.0)

        composite = CompositeLimiter([open_window, full_window], clock)
        assert composite.try_acquire() is False

        # The admitting constituent was not charged for the refused call
        assert len(open_window._admitted) == 0

    def test_commits_to_every_constituent(self) -> None:
        clock = FakeClock()
        first, second = WindowLimiter(2, 60.0, clock), WindowLimiter(3, 60.0, clock)
        composite = CompositeLimiter([first, second], clock)

        assert composite.try_acquire() is True
        assert len(first._admitted) == 1
        assert len(second._admitted) == 1

    def test_short_and_long_windows(self) -> None:
        """25 per 75 s AND 75 per 11 min."""
        clock = FakeClock()
        composite = CompositeLimiter([WindowLimiter(25, 75.0, clock), WindowLimiter(75, 660.0, clock)], clock)

        granted = 0
        for second in range(0, 660, 3):
            clock.now = float(second)
            if composite.try_acquire():
                granted += 1

        assert granted == 75

    def test_next_delay(self) -> None:
        clock = FakeClock()
        composite = CompositeLimiter([WindowLimiter(1, 30.0, clock)], clock)
        assert composite.try_acquire()
        clock.now = 10.0
        assert composite.next_delay() == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_acquire_waits_for_window(self) -> None:
        composite = CompositeLimiter([WindowLimiter(1, 0.05)], poll_interval=0.01)
        loop = asyncio.get_running_loop()

        async with composite.acquire():
            pass
        started = loop.time()
        async with composite.acquire():
            pass

        assert loop.time() - started >= 0.03

    @pytest.mark.asyncio
    async def test_acquire_is_cancellable(self) -> None:
        composite = CompositeLimiter([WindowLimiter(1, 60.0)])
        async with composite.acquire():
            pass

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.05):
                async with composite.acquire():
                    pass

    @pytest.mark.asyncio
    async def test_concurrency_permit_released_on_error(self) -> None:
        """The permit is released whatever the exit path."""
        concurrency = ConcurrencyLimiter(1)
        composite = CompositeLimiter([concurrency], poll_interval=0.01)

        with pytest.raises(RuntimeError):
            async with composite.acquire():
                raise RuntimeError("boom")

        async with asyncio.timeout(1):
            async with composite.acquire():
                pass

    @pytest.mark.asyncio
    async def test_concurrency_limit_blocks_second_holder(self) -> None:
        composite = CompositeLimiter([ConcurrencyLimiter(1)], poll_interval=0.01)
        entered = asyncio.Event()

        async def second() -> None:
            async with composite.acquire():
                entered.set()

        async with composite.acquire():
            task = asyncio.create_task(second())
            await asyncio.sleep(0.03)
            assert not entered.is_set()

        await asyncio.wait_for(task, 1)
        assert entered.is_set()


class TestRateLimiters:
    @pytest.mark.asyncio
    async def test_unknown_path_never_blocks(self) -> None:
        limiters = RateLimiters()
        async with asyncio.timeout(1):
            for _ in range(100):
                async with limiters.acquire("/common/v1/operations"):
                    pass

    def test_from_settings_default_table(self, settings) -> None:
        limiters = RateLimiters.from_settings(settings)
        composite = limiters._limiters.get("/common/v1/shopping_receipt")

        assert composite is not None
        assert [(w.limit, w.window) for w in composite.limiters] == [(25, 75.0), (75, 660.0)]
        assert limiters._limiters.get("/common/v1/operations") is None

"""Unit tests for readiness polling and the publication throttle."""

import pytest

from easyvinted.publisher.readiness import ReadinessConfig, ReadinessWaiter
from easyvinted.publisher.throttle import PublicationThrottle
from easyvinted.utils.config import PublisherConfig


class FakeClock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def predicate_from(values):
    results = iter(values)

    async def predicate():
        value = next(results)
        if isinstance(value, Exception):
            raise value
        return value
    return predicate


class TestReadinessWaiter:
    """Test ReadinessWaiter."""

    @pytest.mark.asyncio
    async def test_ready_immediately(self):
        """Test no sleep happens when the page is already ready."""
        clock = FakeClock()
        waiter = ReadinessWaiter(timeout_ms=1000, sleep=clock.sleep, clock=clock)

        assert await waiter.wait_until(predicate_from([True]), "form", fallback_delay_ms=500)
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_backoff(self):
        """Test the pause doubles between checks up to the cap."""
        clock = FakeClock()
        config = ReadinessConfig(timeout_ms=10000, initial_interval_ms=100, max_interval_ms=300)
        waiter = ReadinessWaiter(config=config, sleep=clock.sleep, clock=clock)

        ready = await waiter.wait_until(predicate_from([False, False, False, True]), "form")

        assert ready
        assert clock.sleeps == pytest.approx([0.1, 0.2, 0.3])

    @pytest.mark.asyncio
    async def test_exceptions_count_as_not_ready(self):
        """Test a predicate raising while the page mutates is retried."""
        clock = FakeClock()
        waiter = ReadinessWaiter(timeout_ms=1000, sleep=clock.sleep, clock=clock)

        ready = await waiter.wait_until(predicate_from([RuntimeError("detached"), True]), "form")
        assert ready

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_delay(self):
        """Test the fixed delay is used when polling gives up."""
        clock = FakeClock()
        waiter = ReadinessWaiter(timeout_ms=500, sleep=clock.sleep, clock=clock)

        async def never():
            return False

        ready = await waiter.wait_until(never, "thumbnail", fallback_delay_ms=1500)

        assert not ready
        assert clock.sleeps[-1] == pytest.approx(1.5)
        assert sum(clock.sleeps[:-1]) == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_disabled_uses_fallback_only(self):
        """Test a zero budget never calls the predicate."""
        clock = FakeClock()
        waiter = ReadinessWaiter(timeout_ms=0, sleep=clock.sleep, clock=clock)

        async def explode():
            raise AssertionError("predicate should not run")

        assert not await waiter.wait_until(explode, "form", fallback_delay_ms=2000)
        assert clock.sleeps == [2.0]


class TestPublicationThrottle:
    """Test PublicationThrottle."""

    @pytest.mark.asyncio
    async def test_fixed_delay(self):
        """Test the configured delay is slept."""
        clock = FakeClock()
        throttle = PublicationThrottle(delay_ms=60000, sleep=clock.sleep)

        assert await throttle.wait() == 60.0
        assert clock.sleeps == [60.0]

    @pytest.mark.asyncio
    async def test_jitter_bounds(self):
        """Test jitter only ever adds to the delay."""
        clock = FakeClock()
        throttle = PublicationThrottle(delay_ms=1000, jitter_ms=500, sleep=clock.sleep)

        for _ in range(20):
            delay = await throttle.wait()
            assert 1.0 <= delay <= 1.5

    @pytest.mark.asyncio
    async def test_zero_delay_does_not_sleep(self):
        """Test a zero delay skips the sleep."""
        clock = FakeClock()
        throttle = PublicationThrottle(delay_ms=0, sleep=clock.sleep)

        assert await throttle.wait() == 0.0
        assert clock.sleeps == []

    def test_negative_delay(self):
        """Test negative delays are rejected."""
        with pytest.raises(ValueError):
            PublicationThrottle(delay_ms=-1)

    def test_from_config(self):
        """Test the throttle reads the publisher config."""
        throttle = PublicationThrottle.from_config(
            PublisherConfig(delay_between_posts_ms=5000, delay_jitter_ms=200)
        )
        assert throttle.delay_ms == 5000
        assert throttle.jitter_ms == 200

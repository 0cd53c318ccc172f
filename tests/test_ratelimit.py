"""Tests for the token-bucket rate limiter."""

from aiostreams.ratelimit import TokenBucket


class FakeTime:
    """Clock and sleep pair where sleeping advances the clock."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestTokenBucket:
    """Tests for TokenBucket."""

    def test_first_acquire_is_immediate(self) -> None:
        """Test a fresh bucket hands out a token without waiting."""
        fake = FakeTime()
        bucket = TokenBucket.from_interval(2.5, clock=fake.clock, sleep=fake.sleep)
        assert bucket.acquire() == 0.0
        assert fake.sleeps == []

    def test_minimum_spacing(self) -> None:
        """Test consecutive acquisitions are spaced by the interval."""
        fake = FakeTime()
        bucket = TokenBucket.from_interval(2.5, clock=fake.clock, sleep=fake.sleep)

        start = fake.now
        bucket.acquire()
        bucket.acquire()
        bucket.acquire()

        assert fake.now - start >= 5.0 - 1e-6
        assert abs(sum(fake.sleeps) - 5.0) < 1e-6

    def test_elapsed_time_refills(self) -> None:
        """Test waiting long enough outside acquire() avoids a sleep."""
        fake = FakeTime()
        bucket = TokenBucket.from_interval(2.0, clock=fake.clock, sleep=fake.sleep)
        bucket.acquire()

        fake.now += 3.0
        assert bucket.acquire() == 0.0

    def test_try_acquire(self) -> None:
        """Test try_acquire never blocks."""
        fake = FakeTime()
        bucket = TokenBucket(rate=1.0, clock=fake.clock, sleep=fake.sleep)

        assert bucket.try_acquire() is True
        assert bucket.try_acquire() is False
        assert bucket.time_until_available() == 1.0

    def test_burst(self) -> None:
        """Test a burst allows several immediate tokens."""
        fake = FakeTime()
        bucket = TokenBucket(rate=1.0, burst=3, clock=fake.clock, sleep=fake.sleep)

        assert [bucket.try_acquire() for _ in range(4)] == [True, True, True, False]

    def test_unlimited(self) -> None:
        """Test a zero rate never waits."""
        fake = FakeTime()
        bucket = TokenBucket.from_interval(0, clock=fake.clock, sleep=fake.sleep)
        assert bucket.rate == 0.0
        for _ in range(5):
            assert bucket.acquire() == 0.0

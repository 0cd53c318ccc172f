"""Token-bucket scheduling for providers with a minimum request spacing.

AniDB bans clients that send more than one request every two seconds.
Instead of a module-level "last request" timestamp, each client owns a
TokenBucket and acquires a token before sending a request.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Float slack so a sleep of exactly the computed wait always yields a token
_EPSILON = 1e-9


class TokenBucket:
    """Token-bucket rate limiter.

    With ``burst=1`` this enforces a strict minimum spacing of
    ``1 / rate`` seconds between consecutive acquisitions.

    Args:
        rate: Tokens replenished per second. 0 or less means unlimited.
        burst: Maximum bucket size (allows short bursts).
        clock: Monotonic clock in seconds. Defaults to time.monotonic.
        sleep: Blocking sleep used by acquire(). Defaults to time.sleep.
    """

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._rate = rate
        self._burst = max(1, burst)
        self._tokens = float(self._burst)
        self._clock = clock
        self._sleep = sleep
        self._last_refill = clock()

    @classmethod
    def from_interval(cls, seconds: float, **kwargs: Any) -> TokenBucket:
        """Create a bucket that allows one request every `seconds`."""
        return cls(rate=1.0 / seconds if seconds > 0 else 0.0, burst=1, **kwargs)

    @property
    def rate(self) -> float:
        """Current tokens-per-second rate."""
        return self._rate

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self._tokens = min(self._burst, self._tokens + elapsed * self._rate)
        self._last_refill = now

    def time_until_available(self) -> float:
        """Seconds until a token can be taken, without consuming one."""
        if self._rate <= 0:
            return 0.0
        self._refill()
        if self._tokens >= 1.0 - _EPSILON:
            return 0.0
        return (1.0 - self._tokens) / self._rate

    def try_acquire(self) -> bool:
        """Take a token if one is available right now."""
        if self._rate <= 0:
            return True
        self._refill()
        if self._tokens >= 1.0 - _EPSILON:
            self._tokens = max(0.0, self._tokens - 1.0)
            return True
        return False

    def acquire(self) -> float:
        """Wait until a token is available, then consume it.

        Returns:
            Total seconds spent waiting.
        """
        waited = 0.0
        while not self.try_acquire():
            wait = self.time_until_available()
            logger.debug("Rate limit: waiting %.2fs", wait)
            self._sleep(wait)
            waited += wait
        return waited

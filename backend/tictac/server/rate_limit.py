"""Per-connection message throttling."""

import time
from collections.abc import Callable


class MessageRateLimiter:
    """Token bucket: ``rate`` messages per second sustained, bursts up to ``burst``.

    Each inbound frame calls allow(); False means the frame should be
    answered with a rate_limited error and dropped.
    """

    def __init__(
        self,
        rate: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()

    @property
    def available(self) -> float:
        return self._tokens

    def allow(self) -> bool:
        now = self._clock()
        self._tokens = min(float(self._burst), self._tokens + (now - self._last_refill) * self._rate)
        self._last_refill = now
        if self._tokens < 1.0:
            return False
        self._tokens -= 1.0
        return True

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Mapping

log = logging.getLogger(__name__)

LOW_REMAINING_THRESHOLD = 20
RATE_LIMIT_SLEEP        = 60


class RateLimitGate:
    """
    Adaptive throttle shared by every concurrent pipeline.

    Each response feeds its X-RateLimit-* headers in via observe(); every
    request awaits wait() first. When the reported quota drops to the
    threshold, callers sleep until the reset time (capped at max_wait)
    instead of spending the last calls and getting rejected.
    """

    def __init__(
        self,
        low_threshold: int = LOW_REMAINING_THRESHOLD,
        max_wait: float = RATE_LIMIT_SLEEP,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._low_threshold = low_threshold
        self._max_wait      = max_wait
        self._clock         = clock
        self._sleep         = sleep
        self._remaining: int | None   = None
        self._reset_at:  float | None = None
        self._blocked_until: float    = 0.0

    @property
    def remaining(self) -> int | None:
        return self._remaining

    def observe(self, headers: Mapping[str, str]) -> None:
        """Record the quota reported on a response. Missing headers are ignored."""
        remaining = headers.get("x-ratelimit-remaining")
        reset     = headers.get("x-ratelimit-reset")
        try:
            if remaining is not None:
                self._remaining = int(remaining)
            if reset is not None:
                self._reset_at = float(reset)
        except ValueError:
            log.debug("Ignoring unparsable rate-limit headers: %s / %s", remaining, reset)
            return
        log.debug("Rate limit: %s remaining, resets at %s", self._remaining, self._reset_at)

    def block_for(self, seconds: float) -> None:
        """Hold every caller back for `seconds` (Retry-After from the server)."""
        self._blocked_until = max(self._blocked_until, self._clock() + seconds)

    def delay(self) -> float:
        now  = self._clock()
        wait = max(self._blocked_until - now, 0.0)
        if (
            self._remaining is not None
            and self._reset_at is not None
            and self._remaining <= self._low_threshold
        ):
            wait = max(wait, self._reset_at - now)
        return min(max(wait, 0.0), self._max_wait)

    async def wait(self) -> None:
        delay = self.delay()
        if delay <= 0:
            return
        log.info("Rate limit low (%s remaining) — pausing %.1fs …", self._remaining, delay)
        await self._sleep(delay)

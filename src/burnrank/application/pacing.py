from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[None]]


# ──────────────────────────────
# Throttles
# ──────────────────────────────

class Throttle(Protocol):
    async def after(self, done: int) -> None:
        """Called after each unit of work; `done` is the 1-based count so far."""


class NoThrottle:
    async def after(self, done: int) -> None:
        return None


class FixedDelay:
    """Sleep `delay_s` after every `every`-th unit (every=1 → after each unit)."""

    def __init__(self, delay_s: float, every: int = 1, *, sleep: Sleep = asyncio.sleep) -> None:
        if every < 1:
            raise ValueError(f"every must be >= 1, got {every}")
        self.delay_s = delay_s
        self.every = every
        self._sleep = sleep

    async def after(self, done: int) -> None:
        if self.delay_s > 0 and done % self.every == 0:
            await self._sleep(self.delay_s)


class TokenBucket:
    """
    Allow bursts of `capacity` units, refilled at `rate` units per second.
    Waits only when the bucket is empty.
    """

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0 or capacity < 1:
            raise ValueError("rate must be > 0 and capacity >= 1")
        self.rate = rate
        self.capacity = capacity
        self._tokens = float(capacity)
        self._sleep = sleep
        self._clock = clock
        self._last = clock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._last) * self.rate)
        self._last = now

    async def after(self, done: int) -> None:
        self._refill()
        self._tokens -= 1
        if self._tokens < 0:
            await self._sleep(-self._tokens / self.rate)
            self._refill()


# ──────────────────────────────
# Retry
# ──────────────────────────────

@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff: base, base*factor, base*factor², ...
    `max_attempts=1` means a single try (no retry).
    """
    max_attempts: int = 3
    base_delay_s: float = 0.5
    factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_s * (self.factor ** (attempt - 1))

    async def run(self, fn: Callable[[], Awaitable[T]], *, what: str = "call", sleep: Sleep = asyncio.sleep) -> T:
        tries = 0
        while True:
            tries += 1
            try:
                return await fn()
            except Exception as e:
                if tries >= self.max_attempts:
                    raise
                delay = self.delay_for(tries)
                log.warning("%s failed (attempt %d/%d): %s: %s; retrying in %.2fs",
                            what, tries, self.max_attempts, type(e).__name__, e, delay)
                await sleep(delay)


NO_RETRY = RetryPolicy(max_attempts=1, base_delay_s=0.0)

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import RLock

from ..datastructures.type_aliases import (
    DurationSeconds,
    RequestsPerSecond,
    Timestamp,
    TokenCount,
)


@dataclass(slots=True)
class TokenBucketRateLimiter:
    """Token bucket gating outbound long-poll requests.

    Tokens refill at ``qps`` per second up to ``burst``. ``acquire`` may wait
    for a token, but only when the wait fits inside the caller's timeout;
    otherwise it refuses immediately without consuming anything.
    """

    qps: RequestsPerSecond
    burst: TokenCount = 1.0
    clock: Callable[[], Timestamp] = time.monotonic
    _tokens: TokenCount = field(init=False)
    _last_refill: Timestamp = field(init=False)
    _lock: RLock = field(default_factory=RLock)

    def __post_init__(self) -> None:
        if self.qps <= 0:
            raise ValueError(f"qps must be positive, got {self.qps}")
        if self.burst < 1:
            raise ValueError(f"burst must be at least 1, got {self.burst}")
        self._tokens = self.burst
        self._last_refill = self.clock()

    @property
    def available_tokens(self) -> TokenCount:
        with self._lock:
            self._refill(now=self.clock())
            return self._tokens

    def try_acquire(self) -> bool:
        """Take a token if one is available right now."""
        with self._lock:
            self._refill(now=self.clock())
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    async def acquire(
        self, timeout: DurationSeconds, *, interrupt: asyncio.Event | None = None
    ) -> bool:
        """Wait up to ``timeout`` seconds for a token.

        Setting ``interrupt`` during the wait gives the reserved token back
        and returns False.
        """
        with self._lock:
            self._refill(now=self.clock())
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            wait = (1 - self._tokens) / self.qps
            if wait > timeout:
                return False
            # reserve now so concurrent callers queue behind this one
            self._tokens -= 1

        if interrupt is None:
            await asyncio.sleep(wait)
            return True
        try:
            await asyncio.wait_for(interrupt.wait(), timeout=wait)
        except TimeoutError:
            return True
        with self._lock:
            self._tokens = min(self.burst, self._tokens + 1)
        return False

    def _refill(self, *, now: Timestamp) -> None:
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.burst, self._tokens + elapsed * self.qps)
        self._last_refill = now

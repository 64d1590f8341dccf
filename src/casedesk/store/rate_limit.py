"""Token-bucket pacing for store requests.

Tokens refill at ``rate`` per second up to ``burst``.  A caller asking for
more tokens than are available is told how long to wait; the sync bucket
blocks with :func:`time.sleep`, the async bucket awaits :func:`asyncio.sleep`.
"""

from __future__ import annotations

import asyncio
import threading
import time


class _Bucket:
    """Refill arithmetic shared by both bucket flavours."""

    __slots__ = ("burst", "last_refill", "rate", "tokens")

    def __init__(self, rate_rps: float, burst: int = 10) -> None:
        if rate_rps <= 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")
        self.rate: float = rate_rps
        self.burst: int = burst
        self.tokens: float = float(burst)
        self.last_refill: float = time.monotonic()

    def _take(self, tokens: int) -> float:
        """Consume *tokens* and return the wait owed (``0.0`` if none)."""
        now = time.monotonic()
        self.tokens = min(self.burst, self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now
        if self.tokens >= tokens:
            self.tokens -= tokens
            return 0.0
        wait = (tokens - self.tokens) / self.rate
        self.tokens = 0.0
        return wait


class TokenBucket(_Bucket):
    """Thread-safe token bucket for the synchronous transport."""

    __slots__ = ("_lock",)

    def __init__(self, rate_rps: float, burst: int = 10) -> None:
        super().__init__(rate_rps, burst)
        self._lock = threading.Lock()

    def acquire(self, tokens: int = 1) -> float:
        """Take *tokens*, sleeping if needed; return the seconds waited."""
        with self._lock:
            wait = self._take(tokens)
        # Sleep outside the lock so other threads can proceed.
        if wait > 0:
            time.sleep(wait)
        return wait


class AsyncTokenBucket(_Bucket):
    """Coroutine-safe token bucket for the asynchronous transport."""

    __slots__ = ("_lock",)

    def __init__(self, rate_rps: float, burst: int = 10) -> None:
        super().__init__(rate_rps, burst)
        self._lock = asyncio.Lock()

    async def acquire(self, tokens: int = 1) -> float:
        """Take *tokens*, awaiting if needed; return the seconds waited."""
        async with self._lock:
            wait = self._take(tokens)
        if wait > 0:
            await asyncio.sleep(wait)
        return wait

"""Token-bucket pacing for outgoing requests.

The Megaverse API answers bursts with ``429``.  Pacing requests on the
client side keeps the submission loop from running into the limit in the
first place; the executor still retries whatever gets through.

:class:`TokenBucket` blocks with :func:`time.sleep`; :class:`AsyncTokenBucket`
awaits :func:`asyncio.sleep`.  Both share the refill arithmetic in
:class:`_Bucket`.
"""

from __future__ import annotations

import asyncio
import threading
import time


class _Bucket:
    """Refill bookkeeping shared by the sync and async buckets."""

    __slots__ = ("burst", "last_refill", "rate", "tokens")

    def __init__(self, rate_rps: float, burst: int) -> None:
        if rate_rps <= 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")

        self.rate: float = rate_rps
        self.burst: int = burst
        self.tokens: float = float(burst)
        self.last_refill: float = time.monotonic()

    def _take(self, tokens: int) -> float:
        """Consume *tokens* and return how long the caller must wait."""
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
    """Thread-safe token bucket for the synchronous transport.

    Parameters
    ----------
    rate_rps:
        Sustained refill rate in tokens per second.
    burst:
        Maximum number of tokens the bucket can hold.
    """

    __slots__ = ("_lock",)

    def __init__(self, rate_rps: float, burst: int = 1) -> None:
        super().__init__(rate_rps, burst)
        self._lock = threading.Lock()

    def acquire(self, tokens: int = 1) -> float:
        """Take *tokens*, sleeping if necessary; returns seconds waited."""
        with self._lock:
            wait = self._take(tokens)
        if wait > 0:
            time.sleep(wait)
        return wait


class AsyncTokenBucket(_Bucket):
    """Token bucket for the asynchronous transport.

    Parameters
    ----------
    rate_rps:
        Sustained refill rate in tokens per second.
    burst:
        Maximum number of tokens the bucket can hold.
    """

    __slots__ = ("_lock",)

    def __init__(self, rate_rps: float, burst: int = 1) -> None:
        super().__init__(rate_rps, burst)
        self._lock = asyncio.Lock()

    async def acquire(self, tokens: int = 1) -> float:
        """Take *tokens*, awaiting if necessary; returns seconds waited."""
        async with self._lock:
            wait = self._take(tokens)
        if wait > 0:
            await asyncio.sleep(wait)
        return wait

"""Token-bucket rate limiting for outbound module proxy requests.

Purpose
-------
Keep a scan of many binaries from hammering the public module proxy. One
:class:`TokenBucket` is created per run and shared by every request, which
passes through :class:`RateLimitedTransport` before reaching the network.

Contents
--------
* :class:`TokenBucket` - Lock-protected token bucket with injectable clock
* :class:`RateLimitedTransport` - httpx transport decorator that waits for
  a token before forwarding each request

System Role
-----------
Sits between :mod:`gobin_outdated.registry` and httpx's network transport.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_RATE = 2.0


class TokenBucket:
    """Token bucket allowing ``rate`` acquisitions per second.

    The bucket starts full. Each :meth:`acquire` takes one token; when the
    bucket is empty the caller sleeps until the next token has refilled.

    Attributes:
        rate: Tokens added per second.
        burst: Bucket capacity (the number of immediate acquisitions).
    """

    def __init__(
        self,
        rate: float = DEFAULT_RATE,
        burst: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if burst < 1:
            raise ValueError(f"burst must be at least 1, got {burst}")
        self.rate = float(rate)
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._last = clock()
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"TokenBucket(rate={self.rate!r}, burst={self.burst!r})"

    def _refill(self) -> None:
        now = self._clock()
        # A clock stepping backwards must not mint tokens
        elapsed = max(0.0, now - self._last)
        self._last = now
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)

    async def acquire(self) -> None:
        """Wait until a token is available and take it.

        Raises:
            asyncio.CancelledError: If the waiting task is cancelled. No
                token is consumed in that case.
        """
        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                wait = (1.0 - self._tokens) / self.rate
            logger.debug("Rate limit reached, waiting %.3fs", wait)
            await self._sleep(wait)


class RateLimitedTransport(httpx.AsyncBaseTransport):
    """Forward requests to ``transport`` once ``limiter`` grants a token.

    Args:
        limiter: Shared token bucket for the whole run.
        transport: Wrapped transport; defaults to httpx's network transport.
    """

    def __init__(
        self,
        limiter: TokenBucket,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.limiter = limiter
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await self.limiter.acquire()
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()


__all__ = [
    "DEFAULT_RATE",
    "RateLimitedTransport",
    "TokenBucket",
]

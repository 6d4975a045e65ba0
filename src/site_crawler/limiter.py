"""Bounded slot gate for concurrent page fetches."""

from __future__ import annotations

import asyncio


class ConcurrencyLimiter:
    """Allow at most max_concurrency holders at once.

    Thin wrapper over asyncio.Semaphore that also tracks how many slots are
    held and the highest number held at the same time.
    """

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.in_flight = 0
        self.peak = 0

    async def acquire(self) -> None:
        await self._semaphore.acquire()
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)

    def release(self) -> None:
        self.in_flight -= 1
        self._semaphore.release()

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.release()

"""Optional limiter shared by every run of one controller."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator


class RateGate:
    """Caps concurrent generation requests and spaces their start times.

    With no limit and no interval the gate is a pass-through, which keeps
    independent topic runs fully concurrent.
    """

    def __init__(self, max_concurrent: int | None = None, min_interval: float = 0.0) -> None:
        self._max_concurrent = max_concurrent
        self._min_interval = max(min_interval, 0.0)
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._interval_lock = asyncio.Lock()
        self._last_start: float | None = None

    @property
    def enabled(self) -> bool:
        return self._semaphore is not None or self._min_interval > 0

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        if self._semaphore is None:
            await self._space_out()
            yield
            return
        async with self._semaphore:
            await self._space_out()
            yield

    async def _space_out(self) -> None:
        if self._min_interval <= 0:
            return
        async with self._interval_lock:
            now = time.monotonic()
            if self._last_start is not None:
                wait = self._last_start + self._min_interval - now
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_start = time.monotonic()


__all__ = ["RateGate"]

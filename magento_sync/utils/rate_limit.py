"""Per-host request pacing."""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict


class RateLimiter:
    """Spaces requests to the same host at least ``1 / rate`` seconds apart.

    A non-positive rate disables pacing.
    """

    def __init__(self, *, rate: float = 5.0) -> None:
        self.min_interval = 1.0 / rate if rate > 0 else 0.0
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._last_request: dict[str, float] = defaultdict(float)

    async def wait_for_host(self, host: str) -> None:
        if not self.min_interval:
            return
        async with self._locks[host]:
            elapsed = time.monotonic() - self._last_request[host]
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            self._last_request[host] = time.monotonic()

"""Retry helpers for transient transport failures."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

RETRY_EXCEPTIONS = (OSError, asyncio.TimeoutError, httpx.TransportError)
RETRY_STATUS_CODES = frozenset({429, 502, 503, 504})


def retry_async(func: Callable[..., Awaitable[httpx.Response]], *, attempts: int = 3, base_delay: float = 1.0):
    """Wrap an httpx request coroutine so transient failures are retried.

    Connection errors and timeouts are retried, as are responses with a
    throttling or gateway status. The last response or exception is returned
    or raised unchanged once attempts run out.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        delay = base_delay
        for attempt in range(attempts):
            last = attempt == attempts - 1
            try:
                response = await func(*args, **kwargs)
            except RETRY_EXCEPTIONS as exc:
                if last:
                    raise
                logger.debug("Transport error (%s), retrying in %.1fs", exc, delay)
            else:
                if response.status_code not in RETRY_STATUS_CODES or last:
                    return response
                logger.debug("Got HTTP %s, retrying in %.1fs", response.status_code, delay)
            await asyncio.sleep(delay + random.random() * base_delay)
            delay *= 2

    return wrapper

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx

from ..errors import UpstreamError

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


async def with_backoff(
    func: Callable[[], Awaitable[httpx.Response]],
    *,
    retries: int = 3,
    base_delay: float = 0.5,
) -> httpx.Response:
    """Run an HTTP call with exponential backoff on transport errors and 429/5xx.

    Any other response (including 404) is returned as-is for the caller to
    interpret. Raises UpstreamError once attempts are exhausted.
    """
    last_exc: Exception | None = None
    delay = base_delay
    attempts = max(1, retries)
    for attempt in range(attempts):
        try:
            resp = await func()
            if resp.status_code not in RETRYABLE_STATUS:
                return resp
            last_exc = UpstreamError(f"HTTP {resp.status_code}")
        except httpx.TransportError as e:
            last_exc = e
        if attempt < attempts - 1:
            await asyncio.sleep(delay)
            delay *= 2
    if isinstance(last_exc, UpstreamError):
        raise last_exc
    raise UpstreamError(str(last_exc)) from last_exc

"""Bounded-concurrency helper for ingestion fan-out.

``throttled_gather`` is a drop-in replacement for ``asyncio.gather`` that
wraps each awaitable in a semaphore acquire/release.  Unlike a module-level
semaphore, the caller owns the limit: every ingestion run creates its own
semaphore so concurrent runs never throttle each other.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    limit: int = 1,
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with at most *limit* in flight.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    limit:
        Maximum number of awaitables running at once.  Ignored when an
        explicit *semaphore* is passed.
    semaphore:
        Optional semaphore shared with other callers.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(max(1, limit))

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)

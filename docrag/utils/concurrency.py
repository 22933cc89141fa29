"""Bounded-concurrency helpers for running independent ingestion jobs.

Ingestion jobs for different documents may run side by side; each job's
stages stay strictly sequential.  :func:`throttled_gather` caps how many
jobs are in flight at once, standing in for the size of a worker pool
pulling from an external queue.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    concurrency: int = 2,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most *concurrency* at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute.
    concurrency:
        Maximum number of awaitables running simultaneously.  Values below
        one are treated as one.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)

"""Shared concurrency primitives for bounded fan-out.

:func:`throttled_gather` is a drop-in replacement for ``asyncio.gather``
that wraps each awaitable in a semaphore acquire/release.  Batch ingestion
uses it to run one pipeline per document while never having more than
``max_concurrency`` of them in flight.
"""

from __future__ import annotations

import asyncio
import os
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


def default_concurrency() -> int:
    """Return the host's logical core count (at least 1)."""
    return max(1, os.cpu_count() or 1)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore for concurrency control.  Defaults to one sized by
        :func:`default_concurrency`.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(default_concurrency())

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)

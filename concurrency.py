"""Async helpers around blocking upstream calls."""

import asyncio
import time
from typing import Awaitable, Callable, Iterable, TypeVar

import requests

from errors import UpstreamUnavailable

T = TypeVar("T")
R = TypeVar("R")


async def call_upstream(fn: Callable[..., R], *args, timeout: float, **kwargs) -> R:
    """Run a blocking client call in a worker thread and wait until the thread is done.

    The caller keeps whatever concurrency slot it holds for the whole life of the
    thread. A call that ran longer than ``timeout`` (measured from when the thread
    started, not from when it was queued) counts as failed and its result is
    dropped; the client's socket timeout bounds how long the thread can block.
    Transport errors surface as UpstreamUnavailable too.
    """

    def timed() -> tuple[R, float]:
        started = time.monotonic()
        result = fn(*args, **kwargs)
        return result, time.monotonic() - started

    try:
        result, elapsed = await asyncio.to_thread(timed)
    except requests.RequestException as exc:
        raise UpstreamUnavailable(str(exc)) from exc
    if elapsed > timeout:
        raise UpstreamUnavailable(f"{getattr(fn, '__name__', 'upstream call')} took {elapsed:.2f}s (timeout {timeout}s)")
    return result


async def bounded_gather(items: Iterable[T], worker: Callable[[T], Awaitable[R]], limit: int) -> list[R]:
    """Apply ``worker`` to every item with at most ``limit`` in flight. Results keep input order."""
    if limit < 1:
        raise ValueError("limit must be >= 1")
    semaphore = asyncio.Semaphore(limit)

    async def _run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    tasks = [asyncio.create_task(_run(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise

"""Concurrency primitives for the extraction pipeline.

Two patterns live here:

1. **throttled_gather** -- ``asyncio.gather`` with every awaitable wrapped
   in a semaphore, so a batch upload never runs more pipelines at once
   than the configured limit.
2. **race_with_timeout** -- run one awaitable against a deadline and
   abandon it (best-effort cancel, no join) if the deadline wins.  Abandoned
   tasks are parked in ``_ABANDONED_TASKS`` until they finish so the event
   loop keeps a strong reference and their exceptions are consumed.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

import structlog

from src.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)

_ABANDONED_TASKS: set[asyncio.Task] = set()


class RaceTimeout(Exception):
    """The deadline fired before the raced awaitable completed."""


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` slots at a time.

    Results come back in input order, mirroring ``asyncio.gather``.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


def _reap_abandoned(task: asyncio.Task) -> None:
    _ABANDONED_TASKS.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _logger.debug("abandoned_task_failed", error=str(exc))


async def race_with_timeout(awaitable: Awaitable[_T], timeout_s: float) -> _T:
    """Await *awaitable* unless *timeout_s* elapses first.

    Unlike ``asyncio.wait_for`` this never waits for the loser to
    acknowledge cancellation: a provider stuck in a blocking call cannot
    stall the caller.

    Raises:
        RaceTimeout: if the deadline fires first.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_s)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    task.cancel()
    _ABANDONED_TASKS.add(task)
    task.add_done_callback(_reap_abandoned)
    raise RaceTimeout(f"timed out after {timeout_s:.3f}s")

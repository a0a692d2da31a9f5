#!/usr/bin/env python3
"""Concurrency helpers for the charter data sync.

Synchronizers are sequential by default. These helpers cover the two places
where concurrency is allowed:

    - Independent reads with no ordering dependency (e.g., the disjoint
      catalogue collections) may be issued concurrently
    - Upserts may be spread over a bounded number of concurrent slots when
      SYNC_MAX_CONCURRENT_UPSERTS is raised above 1

In both cases a failure of one item never aborts the others.

Example:
    results = await run_concurrent_tasks({
        "countries": api.fetch_countries,
        "regions": api.fetch_regions,
    }, max_concurrent=4)
    if isinstance(results["regions"], Exception):
        logger.error(f"Region fetch failed: {results['regions']}")
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================
# Concurrent Processing Patterns
# ============================================

async def process_concurrent(
    items: list[T],
    processor: Callable[[T], Awaitable[Any]],
    max_concurrent: int = 10,
    return_exceptions: bool = False,
) -> list[Any]:
    """Apply ``processor`` to every item, at most ``max_concurrent`` at a time.

    A limit of 1 (the sync default) awaits the items one after the other, so
    the processing order equals the input order. Results always follow the
    input order.

    Args:
        items: Items to process
        processor: Coroutine function called once per item
        max_concurrent: Number of items in flight
        return_exceptions: Put an item's exception in its result slot
            instead of raising it

    Returns:
        One result (or exception) per item
    """
    if max_concurrent <= 1:
        results = []
        for item in items:
            try:
                results.append(await processor(item))
            except Exception as e:
                if not return_exceptions:
                    raise
                results.append(e)
        return results

    slots = asyncio.Semaphore(max_concurrent)

    async def in_slot(item: T) -> Any:
        async with slots:
            return await processor(item)

    return await asyncio.gather(*(in_slot(item) for item in items), return_exceptions=return_exceptions)


async def run_concurrent_tasks(
    tasks_dict: dict[str, Callable[[], Awaitable[T]]],
    max_concurrent: Optional[int] = None,
) -> dict[str, T | Exception]:
    """Await named zero-argument coroutine functions together.

    Returns:
        ``{name: result}`` in the order of ``tasks_dict``; a task that raised
        maps to its exception
    """
    names = list(tasks_dict)

    async def call(name: str) -> T:
        return await tasks_dict[name]()

    outcomes = await process_concurrent(
        names,
        call,
        max_concurrent=max_concurrent or len(names) or 1,
        return_exceptions=True,
    )
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, Exception):
            logger.debug(f"Task '{name}' failed: {outcome}")
    return dict(zip(names, outcomes))


__all__ = [
    "process_concurrent",
    "run_concurrent_tasks",
]

import asyncio
from typing import Any, Awaitable, Callable, List, Sequence, TypeVar

from core.logger import get_logger

logger = get_logger("Batch")

T = TypeVar("T")


def partition(items: Sequence[T], batch_size: int) -> List[List[T]]:
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(items[start:start + batch_size]) for start in range(0, len(items), batch_size)]


async def run_batches(
    items: Sequence[T],
    batch_size: int,
    task: Callable[[T], Awaitable[Any]],
    label: Callable[[T], str] = str,
) -> List[Any]:
    """Run ``task`` for every item, at most ``batch_size`` at a time.

    Items of one batch run concurrently; the next batch starts only after
    every task of the current one has settled. A failing task is logged and
    its exception is returned in place of a result, siblings and later
    batches are unaffected. Results come back in input order.
    """
    batches = partition(items, batch_size)
    results: List[Any] = []

    for number, batch in enumerate(batches, start=1):
        logger.info(f"Processing batch {number} of {len(batches)} ({len(batch)} item(s))")

        tasks = [asyncio.create_task(task(item)) for item in batch]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Error processing {label(item)}: {outcome}")
        results.extend(outcomes)
        logger.info(f"Batch {number} completed")

    return results

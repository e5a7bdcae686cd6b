"""Sliding-window execution of work items under a concurrency cap."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

log = logging.getLogger(__name__)


class FanOutAbortedError(Exception):
    """Raised when a worker failed unexpectedly and the batch was aborted."""

    def __init__(self, index: int, cause: BaseException) -> None:
        self.index = index
        self.cause = cause
        super().__init__(f"Work item {index} failed: {cause}")


async def run_bounded[T, R](
    items: Sequence[T],
    limit: int,
    worker: Callable[[T], Awaitable[R]],
) -> list[R]:
    """Run worker over items with at most ``limit`` invocations in flight.

    A fixed number of lanes share one index cursor. Each lane claims the next
    index, awaits the worker and stores the result at that index, so a slot
    freed by a fast item is refilled immediately and results keep input order.

    If a worker raises, no further items are claimed. Invocations already in
    flight are awaited, then the first failure is raised.

    Args:
        items: Work items, in the order results are returned
        limit: Maximum number of concurrent worker invocations (>= 1)
        worker: Coroutine function executing one item

    Returns:
        One result per item, in input order

    Raises:
        ValueError: If limit is lower than 1
        FanOutAbortedError: If any worker invocation raised

    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be at least 1, got {limit}")

    results: dict[int, R] = {}
    cursor = iter(range(len(items)))
    failures: list[FanOutAbortedError] = []

    async def lane() -> None:
        while not failures:
            index = next(cursor, None)
            if index is None:
                return
            try:
                results[index] = await worker(items[index])
            except Exception as e:
                log.debug("Work item %d raised, stopping dispatch", index)
                failures.append(FanOutAbortedError(index, e))

    await asyncio.gather(*(lane() for _ in range(min(limit, len(items)))))

    if failures:
        first = failures[0]
        raise first from first.cause

    return [results[index] for index in range(len(items))]

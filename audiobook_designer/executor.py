"""Run coroutine thunks under a concurrency ceiling, keeping input order."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_bounded(
    tasks: list[Callable[[], Awaitable[T]]],
    limit: int,
    errors: dict[int, BaseException] | None = None,
) -> list[T | None]:
    """Await every thunk with at most ``limit`` in flight.

    Workers pull the next index from a shared cursor as soon as they finish,
    so a slow task never holds back the queue. A task that raises leaves
    None at its index; the exception is logged and, when ``errors`` is
    given, stored under that index. Siblings keep running.
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be positive, got {limit}")

    results: list[T | None] = [None] * len(tasks)
    cursor = 0

    async def worker():
        nonlocal cursor
        while cursor < len(tasks):
            # Claim before awaiting so no two workers take the same index
            index = cursor
            cursor += 1
            try:
                results[index] = await tasks[index]()
            except Exception as e:
                logger.warning("Task %d/%d failed: %s", index + 1, len(tasks), e)
                if errors is not None:
                    errors[index] = e

    await asyncio.gather(*(worker() for _ in range(min(limit, len(tasks)))))
    return results

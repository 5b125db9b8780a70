"""Grouped parallel execution of batch processors."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

log = logging.getLogger(__name__)

B = TypeVar("B")
R = TypeVar("R")


async def process_batches_in_parallel(
    batches: Sequence[B],
    processor: Callable[[B], Awaitable[list[R]]],
    max_concurrent: int | None = None,
) -> list[R]:
    """Run ``processor`` over ``batches`` in groups of at most ``max_concurrent``.

    Each group runs concurrently and must finish completely before the next
    group starts, so at most ``max_concurrent`` calls are ever in flight.
    Results are flattened in batch order. The first failure in a group
    cancels the batches still running in that group and propagates
    unwrapped; later groups never start.
    """
    from textdigest.config import MAX_CONCURRENT_BATCHES

    limit = max_concurrent if max_concurrent is not None else MAX_CONCURRENT_BATCHES
    if limit <= 0:
        raise ValueError(f"max_concurrent must be positive, got {limit}.")

    log.info("Processing %d batches with concurrency %d.", len(batches), limit)
    started = time.perf_counter()
    results: list[R] = []
    for start in range(0, len(batches), limit):
        group = batches[start : start + limit]
        try:
            async with asyncio.TaskGroup() as task_group:
                tasks = [task_group.create_task(processor(batch)) for batch in group]
        except ExceptionGroup as failures:
            raise failures.exceptions[0] from failures
        for task in tasks:
            results.extend(task.result())

        done = min(start + limit, len(batches))
        log.info(
            "Completed %d/%d batches (%d%%).",
            done,
            len(batches),
            round(done / len(batches) * 100),
        )

    log.info(
        "Parallel processing finished: %d results in %.0f ms.",
        len(results),
        (time.perf_counter() - started) * 1000,
    )
    return results

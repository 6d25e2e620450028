"""
Batch Scheduler — Bounded-concurrency processing in sequential windows.

Items are split into windows of ``concurrency``; every item in a window runs
concurrently and the window is joined settle-all before the next starts.
A failing item never cancels its siblings or later windows.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger("codepolice.cache.batch")


@dataclass
class BatchError:
    index: int
    error: str


@dataclass
class BatchResult(Generic[R]):
    """Successful results in input order, plus per-item failures."""

    results: list[R] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)


async def process_batch(
    items: list[T],
    processor: Callable[[T], Awaitable[R]],
    concurrency: int = 5,
    on_batch_complete: Callable[[int, int], None] | None = None,
) -> BatchResult[R]:
    """
    Run ``processor`` over ``items``, ``concurrency`` at a time.

    Args:
        items: Inputs, processed in order
        processor: Async callable per item
        concurrency: Window width (>= 1)
        on_batch_complete: Called with (window_number, total_windows)

    Returns:
        BatchResult with ordered successes and {index, error} failures
    """
    width = max(1, concurrency)
    total_batches = (len(items) + width - 1) // width
    outcome: BatchResult[R] = BatchResult()

    for start in range(0, len(items), width):
        window = items[start : start + width]
        settled = await asyncio.gather(
            *(processor(item) for item in window), return_exceptions=True
        )

        for offset, result in enumerate(settled):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"Batch item {start + offset} failed: {result}")
                outcome.errors.append(
                    BatchError(index=start + offset, error=str(result) or type(result).__name__)
                )
            else:
                outcome.results.append(result)

        if on_batch_complete is not None:
            on_batch_complete(start // width + 1, total_batches)

    return outcome

"""
Bounded-window batch execution.

Runs a worker over items in windows of at most ``batch_size`` concurrent
calls, sleeping between windows to stay gentle on the platform. Per-item
failures are captured in the returned :class:`BatchOutcome` list instead
of being raised, and results keep input order.
"""

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from coursestack_common import constants

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchOutcome(Generic[T, R]):
    """Result of one worker call."""

    item: T
    result: R | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_in_batches(
    items: Sequence[T],
    worker: Callable[[T], R],
    batch_size: int = constants.MAX_CONCURRENT_DOWNLOADS,
    delay_ms: int = constants.DOWNLOAD_BATCH_DELAY_MS,
    abort: threading.Event | None = None,
    progress: Callable[[int, int], Any] | None = None,
) -> list[BatchOutcome[T, R]]:
    """
    Run ``worker`` over ``items`` in bounded concurrent windows.

    Args:
        items: Work items
        worker: Callable applied to each item
        batch_size: Maximum concurrent calls per window
        delay_ms: Delay between windows (not after the last one)
        abort: Optional event; remaining windows are skipped once set
        progress: Optional ``(completed, total)`` callback after each window

    Returns:
        One outcome per processed item, in input order
    """
    batch_size = max(batch_size, 1)
    outcomes: list[BatchOutcome[T, R]] = []
    total = len(items)

    for start in range(0, total, batch_size):
        if abort is not None and abort.is_set():
            logger.info(f"Batch run aborted after {len(outcomes)}/{total} items")
            break

        window = items[start : start + batch_size]
        with ThreadPoolExecutor(max_workers=len(window)) as executor:
            futures = [executor.submit(worker, item) for item in window]
            for item, future in zip(window, futures):
                try:
                    outcomes.append(BatchOutcome(item=item, result=future.result()))
                except Exception as e:
                    logger.warning(f"Batch item failed: {e}")
                    outcomes.append(BatchOutcome(item=item, error=str(e)))

        if progress:
            progress(len(outcomes), total)

        if start + batch_size < total and delay_ms > 0:
            if abort is None:
                time.sleep(delay_ms / 1000.0)
            else:
                abort.wait(delay_ms / 1000.0)

    return outcomes

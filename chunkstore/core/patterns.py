"""Concurrency helpers: bounded batches of independent store operations."""
import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Sequence

from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


class BatchFailure(Exception):
    """One or more units of a batch failed. ``failures`` maps unit index to its exception."""

    def __init__(self, failures: Dict[int, BaseException], total: int):
        self.failures = failures
        self.total = total
        first_index = min(failures)
        super().__init__(
            f"{len(failures)}/{total} operations failed; first failure at unit {first_index}: "
            f"{failures[first_index]!r}"
        )

    @property
    def first(self) -> BaseException:
        return self.failures[min(self.failures)]


async def run_batch(
    units: Sequence[Awaitable[Any]],
    max_concurrency: int = 10,
    return_exceptions: bool = False
) -> List[Any]:
    """
    Run independent awaitables concurrently under a semaphore and join them.

    Every unit is allowed to settle before this returns. Results keep the order
    of ``units`` regardless of completion order.

    Args:
        units: Awaitables to run.
        max_concurrency: Upper bound on units in flight.
        return_exceptions: Put exceptions in the result list instead of raising.

    Returns:
        List of results, index-aligned with ``units``.

    Raises:
        BatchFailure: if any unit failed and ``return_exceptions`` is False.
    """
    if not units:
        return []

    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def run_with_semaphore(unit: Awaitable[Any]) -> Any:
        async with semaphore:
            return await unit

    results = await asyncio.gather(
        *(run_with_semaphore(unit) for unit in units),
        return_exceptions=True
    )

    failures = {
        index: result
        for index, result in enumerate(results)
        if isinstance(result, BaseException)
    }
    # Cancellation of the caller is never swallowed into a batch result
    for failure in failures.values():
        if isinstance(failure, asyncio.CancelledError):
            raise failure

    if failures and not return_exceptions:
        logger.debug("Batch finished with %d/%d failures", len(failures), len(units))
        raise BatchFailure(failures, len(units))

    return list(results)

"""Batch service - runs items through the retry executor in bounded groups"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from retrybatch.domain.config.batch import BatchOptions
from retrybatch.domain.config.retry import RetryPolicy
from retrybatch.domain.models.outcome import ItemOutcome
from retrybatch.infrastructure.retry import execute_with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ItemOperation = Callable[[T], Awaitable[R]]


def split_into_groups(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """Split items into contiguous groups (the last one may be smaller)

    Args:
        items: Items to split
        batch_size: Size of each group

    Returns:
        List of groups in input order
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


def _start_tasks(
    group: Sequence[T],
    operation: ItemOperation,
    policy: RetryPolicy,
) -> List[asyncio.Task]:
    return [
        asyncio.ensure_future(execute_with_retry(functools.partial(operation, item), policy))
        for item in group
    ]


async def _cancel_pending(tasks: Sequence[asyncio.Task]) -> None:
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def _run_group_fail_fast(
    group: Sequence[T],
    operation: ItemOperation,
    policy: RetryPolicy,
) -> List[Any]:
    """Run one group concurrently, aborting on the first terminal failure"""
    tasks = _start_tasks(group, operation, policy)
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        failed = [
            task for task in tasks
            if task.done() and not task.cancelled() and task.exception() is not None
        ]
        if failed:
            # Lowest input index wins when several items failed together
            raise failed[0].exception()
        return [task.result() for task in tasks]
    finally:
        await _cancel_pending(tasks)


def _report_progress(options: BatchOptions, completed: int, total: int) -> None:
    logger.info(f"Progress: {completed}/{total} items completed")
    if options.progress_callback is not None:
        options.progress_callback(completed, total)


async def process_batch(
    items: Sequence[T],
    operation: ItemOperation,
    options: Optional[BatchOptions] = None,
) -> List[R]:
    """Process items in fixed-size concurrent groups with retry

    Groups run strictly one after another, so at most batch_size operations
    are in flight. The first item that fails terminally aborts the whole
    call: pending siblings are cancelled and later groups never start.

    Args:
        items: Work items
        operation: Coroutine function called with one item
        options: Batch options (defaults to BatchOptions())

    Returns:
        Results in the same order as items

    Raises:
        Exception: The terminal error of the failed item, unchanged
    """
    if options is None:
        options = BatchOptions()

    total = len(items)
    if total == 0:
        return []

    groups = split_into_groups(items, options.batch_size)
    logger.info(f"Processing {total} items in {len(groups)} groups of up to {options.batch_size}")

    results: List[R] = []
    for number, group in enumerate(groups, start=1):
        logger.debug(f"Starting group {number}/{len(groups)} ({len(group)} items)")
        try:
            group_results = await _run_group_fail_fast(group, operation, options.retry_policy)
        except Exception as e:
            logger.error(f"Group {number}/{len(groups)} failed, aborting batch after {len(results)}/{total} items: {e}")
            raise
        results.extend(group_results)
        _report_progress(options, len(results), total)

    return results


async def process_batch_settled(
    items: Sequence[T],
    operation: ItemOperation,
    options: Optional[BatchOptions] = None,
) -> List[ItemOutcome]:
    """Process items like process_batch but keep going past failures

    Args:
        items: Work items
        operation: Coroutine function called with one item
        options: Batch options (defaults to BatchOptions())

    Returns:
        One ItemOutcome per item, in input order
    """
    if options is None:
        options = BatchOptions()

    total = len(items)
    outcomes: List[ItemOutcome] = []
    for group in split_into_groups(items, options.batch_size):
        tasks = _start_tasks(group, operation, options.retry_policy)
        try:
            settled = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await _cancel_pending(tasks)

        for item, value in zip(group, settled):
            index = len(outcomes)
            if isinstance(value, Exception):
                outcomes.append(ItemOutcome(index=index, item=item, error=value))
            elif isinstance(value, BaseException):
                raise value
            else:
                outcomes.append(ItemOutcome(index=index, item=item, result=value))

        _report_progress(options, len(outcomes), total)

    failures = sum(1 for outcome in outcomes if not outcome.ok)
    if failures:
        logger.warning(f"{failures}/{total} items failed")
    return outcomes

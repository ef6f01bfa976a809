"""Local parallel execution using a thread pool.

This module provides the worker pool that fans per-gene work out over
threads. Extraction is dominated by small file reads against one shared,
read-only genome index, so threads are used rather than processes.

Features:
    - Serial and threaded backends
    - Per-task timing and error capture
    - Cooperative cancellation between tasks
    - Progress callbacks

Example:
    >>> from promoterforge.parallel.executor import ParallelExecutor
    >>> executor = ParallelExecutor(n_workers=8, backend="threads")
    >>> results, stats = executor.map_items(extract_one, loci)
"""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Any, Callable, Sequence, TypeVar

import attrs

from promoterforge.errors import RunCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


# =============================================================================
# Enums
# =============================================================================


class ExecutorBackend(Enum):
    """Available execution backends."""

    SERIAL = "serial"
    THREADS = "threads"


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True)
class TaskResult:
    """Result from one task.

    Attributes:
        task_id: Identifier of the task.
        index: Position of the item in the submitted sequence.
        success: Whether the task returned normally.
        result: Return value on success.
        error: Error message on failure.
        exception: The raised exception on failure.
        duration_seconds: Wall time of the task.
    """

    task_id: str
    index: int
    success: bool
    result: Any | None = None
    error: str | None = None
    exception: BaseException | None = attrs.field(default=None, repr=False)
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "task_id": self.task_id,
            "success": self.success,
            "error": self.error,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@attrs.define(slots=True)
class ExecutionStats:
    """Statistics from parallel execution."""

    total_tasks: int
    successful: int
    failed: int
    total_duration: float
    mean_task_duration: float
    max_task_duration: float

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_tasks": self.total_tasks,
            "successful": self.successful,
            "failed": self.failed,
            "total_duration": round(self.total_duration, 3),
            "mean_task_duration": round(self.mean_task_duration, 3),
            "max_task_duration": round(self.max_task_duration, 3),
        }


# =============================================================================
# Parallel Executor
# =============================================================================


class ParallelExecutor:
    """Execute independent tasks serially or on a thread pool.

    Results are returned in submission order, whatever order tasks
    complete in.

    Features:
    - Failures captured per task, never raised
    - Cooperative cancellation through a threading.Event
    - Progress tracking with callbacks

    Example:
        >>> executor = ParallelExecutor(n_workers=4, backend="threads")
        >>> results, stats = executor.map_items(func, items)
        >>> print(f"Processed {stats.successful}/{stats.total_tasks} items")
    """

    def __init__(
        self,
        n_workers: int = 1,
        backend: ExecutorBackend | str = ExecutorBackend.THREADS,
        progress_callback: Callable[[int, int, str], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            n_workers: Number of parallel workers (1 = serial).
            backend: Execution backend.
            progress_callback: Called with (completed, total, task_id).
            cancel_event: When set, the run stops at the next task boundary.
        """
        self.n_workers = max(1, n_workers)
        self.backend = (
            ExecutorBackend(backend) if isinstance(backend, str) else backend
        )
        self.progress_callback = progress_callback
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()

        # Auto-select serial if n_workers=1
        if self.n_workers == 1:
            self.backend = ExecutorBackend.SERIAL

    def cancel(self) -> None:
        """Request cancellation; takes effect between tasks."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancellation was requested."""
        return self.cancel_event.is_set()

    def map_items(
        self,
        func: Callable[[T], R],
        items: Sequence[T],
        task_ids: Sequence[str] | None = None,
    ) -> tuple[list[TaskResult], ExecutionStats]:
        """Apply function to each item.

        Args:
            func: Function taking one item.
            items: Items to process.
            task_ids: Labels for the tasks (defaults to item_000000, ...).

        Returns:
            Tuple of (results in item order, execution_stats).

        Raises:
            RunCancelled: If cancellation was requested during the run.
        """
        if task_ids is None:
            task_ids = [f"item_{i:06d}" for i in range(len(items))]
        elif len(task_ids) != len(items):
            raise ValueError("task_ids and items must have the same length")

        if not items:
            return [], ExecutionStats(
                total_tasks=0,
                successful=0,
                failed=0,
                total_duration=0.0,
                mean_task_duration=0.0,
                max_task_duration=0.0,
            )

        logger.debug(
            f"Processing {len(items)} tasks with {self.n_workers} workers "
            f"(backend={self.backend.value})"
        )

        start_time = time.time()
        if self.backend == ExecutorBackend.SERIAL:
            results = self._execute_serial(func, items, task_ids)
        else:
            results = self._execute_threaded(func, items, task_ids)

        total_duration = time.time() - start_time
        successful = sum(1 for r in results if r.success)
        durations = [r.duration_seconds for r in results]

        stats = ExecutionStats(
            total_tasks=len(results),
            successful=successful,
            failed=len(results) - successful,
            total_duration=total_duration,
            mean_task_duration=sum(durations) / len(durations) if durations else 0,
            max_task_duration=max(durations) if durations else 0,
        )

        logger.debug(
            f"Completed: {successful}/{len(items)} tasks, "
            f"duration={total_duration:.1f}s"
        )
        return results, stats

    def _run_task(
        self, func: Callable, item: Any, task_id: str, index: int
    ) -> TaskResult:
        start_time = time.time()
        try:
            result = func(item)
        except Exception as e:
            return TaskResult(
                task_id=task_id,
                index=index,
                success=False,
                error=str(e),
                exception=e,
                duration_seconds=time.time() - start_time,
            )
        return TaskResult(
            task_id=task_id,
            index=index,
            success=True,
            result=result,
            duration_seconds=time.time() - start_time,
        )

    def _check_cancelled(self, completed: int, total: int) -> None:
        if self.cancel_event.is_set():
            raise RunCancelled(f"Run cancelled after {completed} of {total} tasks")

    def _execute_serial(
        self,
        func: Callable,
        items: Sequence,
        task_ids: Sequence[str],
    ) -> list[TaskResult]:
        """Serial execution with progress tracking."""
        results = []
        total = len(items)

        for i, item in enumerate(items):
            self._check_cancelled(i, total)
            task_result = self._run_task(func, item, task_ids[i], i)
            results.append(task_result)

            if self.progress_callback:
                self.progress_callback(i + 1, total, task_result.task_id)

        self._check_cancelled(total, total)
        return results

    def _execute_threaded(
        self,
        func: Callable,
        items: Sequence,
        task_ids: Sequence[str],
    ) -> list[TaskResult]:
        """Threaded execution (for I/O-bound tasks)."""
        results: list[TaskResult | None] = [None] * len(items)
        total = len(items)
        completed = 0

        def guarded(i: int) -> TaskResult | None:
            # Tasks still queued when cancellation arrives never start
            if self.cancel_event.is_set():
                return None
            return self._run_task(func, items[i], task_ids[i], i)

        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            futures: dict[Future, int] = {
                executor.submit(guarded, i): i for i in range(total)
            }
            try:
                for future in as_completed(futures):
                    task_result = future.result()
                    if task_result is None:
                        continue
                    completed += 1
                    results[task_result.index] = task_result

                    if self.progress_callback:
                        self.progress_callback(completed, total, task_result.task_id)

                    self._check_cancelled(completed, total)
            except BaseException:
                executor.shutdown(wait=True, cancel_futures=True)
                raise

        self._check_cancelled(completed, total)
        return [r for r in results if r is not None]


# =============================================================================
# Utility Functions
# =============================================================================


def get_optimal_workers(requested: int = 0) -> int:
    """Resolve a requested worker count.

    Args:
        requested: Worker count; 0 (or less) means one per CPU.

    Returns:
        Number of workers, at least 1.
    """
    if requested >= 1:
        return requested
    return os.cpu_count() or 1


def create_progress_bar() -> Any:
    """Create rich progress bar for per-gene execution.

    Returns:
        Rich Progress object.
    """
    from rich.progress import (
        BarColumn,
        MofNCompleteColumn,
        Progress,
        SpinnerColumn,
        TextColumn,
        TimeRemainingColumn,
    )

    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        transient=True,
    )

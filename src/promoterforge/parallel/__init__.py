"""Parallelization utilities for PromoterForge.

Per-gene extraction has no cross-gene dependency, so it is fanned out
over a thread pool sharing one read-only genome index.

Example:
    >>> from promoterforge.parallel import ParallelExecutor
    >>> executor = ParallelExecutor(n_workers=8)
    >>> results, stats = executor.map_items(func, items)
"""

from promoterforge.parallel.executor import (
    ExecutionStats,
    ExecutorBackend,
    ParallelExecutor,
    TaskResult,
    get_optimal_workers,
)

__all__ = [
    "ExecutionStats",
    "ExecutorBackend",
    "ParallelExecutor",
    "TaskResult",
    "get_optimal_workers",
]

"""Tests for promoterforge.parallel.executor module.

Tests cover:
- TaskResult and ExecutionStats data structures
- ParallelExecutor with serial and threaded backends
- Cooperative cancellation
- Utility functions
"""

import os
import threading
import time
from unittest.mock import patch

import pytest

from promoterforge.errors import RunCancelled
from promoterforge.parallel.executor import (
    ExecutionStats,
    ExecutorBackend,
    ParallelExecutor,
    TaskResult,
    create_progress_bar,
    get_optimal_workers,
)

# =============================================================================
# Data Structure Tests
# =============================================================================


class TestTaskResult:
    """Tests for TaskResult data structure."""

    def test_create_successful_result(self):
        """Test creating successful TaskResult."""
        result = TaskResult(task_id="G1", index=0, success=True, result="ACGT", duration_seconds=1.5)
        assert result.task_id == "G1"
        assert result.success
        assert result.result == "ACGT"
        assert result.error is None

    def test_task_result_to_dict(self):
        """Test serialization to dict."""
        result = TaskResult(
            task_id="G1", index=3, success=False, error="boom", duration_seconds=1.23456
        )
        d = result.to_dict()
        assert d == {
            "task_id": "G1",
            "success": False,
            "error": "boom",
            "duration_seconds": 1.235,
        }


class TestExecutionStats:
    """Tests for ExecutionStats data structure."""

    def test_execution_stats_to_dict(self):
        stats = ExecutionStats(
            total_tasks=10,
            successful=8,
            failed=2,
            total_duration=12.34567,
            mean_task_duration=1.23456,
            max_task_duration=3.45678,
        )
        d = stats.to_dict()
        assert d["total_tasks"] == 10
        assert d["failed"] == 2
        assert d["total_duration"] == 12.346
        assert d["max_task_duration"] == 3.457


# =============================================================================
# Executor Tests
# =============================================================================


def square(x):
    return x * x


def fail_on_three(x):
    if x == 3:
        raise ValueError("three")
    return x


class TestParallelExecutor:
    """Tests for ParallelExecutor."""

    def test_executor_creation(self):
        executor = ParallelExecutor(n_workers=4, backend=ExecutorBackend.THREADS)
        assert executor.n_workers == 4
        assert executor.backend == ExecutorBackend.THREADS
        assert not executor.cancelled

    def test_single_worker_uses_serial(self):
        executor = ParallelExecutor(n_workers=1, backend="threads")
        assert executor.backend == ExecutorBackend.SERIAL

    def test_string_backend(self):
        executor = ParallelExecutor(n_workers=2, backend="serial")
        assert executor.backend == ExecutorBackend.SERIAL

    def test_invalid_backend(self):
        with pytest.raises(ValueError):
            ParallelExecutor(n_workers=2, backend="processes")

    @pytest.mark.parametrize("n_workers", [1, 4])
    def test_map_items_order(self, n_workers):
        """Test that results come back in item order."""
        executor = ParallelExecutor(n_workers=n_workers)
        results, stats = executor.map_items(square, list(range(50)))
        assert [r.result for r in results] == [x * x for x in range(50)]
        assert [r.index for r in results] == list(range(50))
        assert stats.total_tasks == 50
        assert stats.successful == 50

    def test_threaded_order_with_uneven_durations(self):
        def slow_first(x):
            time.sleep(0.05 if x < 3 else 0)
            return x

        executor = ParallelExecutor(n_workers=4)
        results, _ = executor.map_items(slow_first, list(range(12)))
        assert [r.result for r in results] == list(range(12))

    def test_task_ids(self):
        executor = ParallelExecutor(n_workers=1)
        results, _ = executor.map_items(square, [1, 2], task_ids=["a", "b"])
        assert [r.task_id for r in results] == ["a", "b"]

    def test_default_task_ids(self):
        results, _ = ParallelExecutor().map_items(square, [1])
        assert results[0].task_id == "item_000000"

    def test_task_ids_length_mismatch(self):
        with pytest.raises(ValueError, match="same length"):
            ParallelExecutor().map_items(square, [1, 2], task_ids=["a"])

    @pytest.mark.parametrize("n_workers", [1, 3])
    def test_errors_captured(self, n_workers):
        executor = ParallelExecutor(n_workers=n_workers)
        results, stats = executor.map_items(fail_on_three, list(range(6)))
        assert stats.failed == 1
        failed = results[3]
        assert not failed.success
        assert failed.error == "three"
        assert isinstance(failed.exception, ValueError)
        assert all(r.success for i, r in enumerate(results) if i != 3)

    def test_empty_items(self):
        results, stats = ParallelExecutor(n_workers=4).map_items(square, [])
        assert results == []
        assert stats.total_tasks == 0

    @pytest.mark.parametrize("n_workers", [1, 4])
    def test_progress_callback(self, n_workers):
        calls = []
        lock = threading.Lock()

        def callback(completed, total, task_id):
            with lock:
                calls.append((completed, total))

        executor = ParallelExecutor(n_workers=n_workers, progress_callback=callback)
        executor.map_items(square, list(range(10)))
        assert sorted(c for c, _ in calls) == list(range(1, 11))
        assert all(total == 10 for _, total in calls)


class TestCancellation:
    """Tests for cooperative cancellation."""

    @pytest.mark.parametrize("n_workers", [1, 4])
    def test_cancel_before_start(self, n_workers):
        calls = []
        executor = ParallelExecutor(n_workers=n_workers)
        executor.cancel()
        with pytest.raises(RunCancelled):
            executor.map_items(calls.append, list(range(10)))
        assert calls == []

    def test_cancel_during_serial_run(self):
        """Test that tasks after the cancellation point never start."""
        seen = []
        executor = ParallelExecutor(n_workers=1)

        def work(x):
            seen.append(x)
            if x == 4:
                executor.cancel()
            return x

        with pytest.raises(RunCancelled, match="after 5 of 20"):
            executor.map_items(work, list(range(20)))
        assert seen == [0, 1, 2, 3, 4]

    def test_cancel_during_threaded_run(self):
        seen = []
        lock = threading.Lock()
        executor = ParallelExecutor(n_workers=2)

        def work(x):
            with lock:
                seen.append(x)
            if x == 2:
                executor.cancel()
            time.sleep(0.01)
            return x

        with pytest.raises(RunCancelled):
            executor.map_items(work, list(range(200)))
        assert len(seen) < 200

    def test_shared_cancel_event(self):
        event = threading.Event()
        executor = ParallelExecutor(n_workers=2, cancel_event=event)
        event.set()
        assert executor.cancelled


# =============================================================================
# Utility Function Tests
# =============================================================================


class TestGetOptimalWorkers:
    """Tests for get_optimal_workers."""

    def test_auto(self):
        with patch.object(os, "cpu_count", return_value=8):
            assert get_optimal_workers() == 8
            assert get_optimal_workers(0) == 8

    def test_explicit_count_kept(self):
        with patch.object(os, "cpu_count", return_value=8):
            assert get_optimal_workers(3) == 3
            assert get_optimal_workers(16) == 16

    def test_unknown_cpu_count(self):
        with patch.object(os, "cpu_count", return_value=None):
            assert get_optimal_workers() == 1


class TestExecutorBackend:
    """Tests for ExecutorBackend enum."""

    def test_backend_values(self):
        assert ExecutorBackend.SERIAL.value == "serial"
        assert ExecutorBackend.THREADS.value == "threads"

    def test_backend_from_string(self):
        assert ExecutorBackend("threads") == ExecutorBackend.THREADS


def test_create_progress_bar():
    progress = create_progress_bar()
    task = progress.add_task("Extracting promoters...", total=10)
    progress.update(task, completed=5)
    assert progress.tasks[0].completed == 5

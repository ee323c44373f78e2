"""Tests for the parallel task scheduler."""

import threading
import time

import pytest

from content_enhancer.models import Priority, Task
from content_enhancer.scheduler import (
    FALLBACK_ERROR,
    UNKNOWN_ERROR,
    ParallelTaskScheduler,
    chunk_tasks,
    create_tasks,
    group_by_priority,
)


def _tasks(ids, priority=Priority.MEDIUM):
    return [Task(id=i, prompt_key="generate_content", args=(i,), model="m", priority=priority) for i in ids]


class ConcurrencyProbe:
    """Call stub that tracks how many calls overlap."""

    def __init__(self, delay=0.02):
        self.delay = delay
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, prompt_key, args, model):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(self.delay)
        with self._lock:
            self.active -= 1
        return args[0]


class TestTask:
    """Tests for the Task model."""

    def test_args_are_frozen_to_tuple(self):
        """Test that a list of args is stored as a tuple."""
        task = Task(id="t", prompt_key="p", args=["x", "y"])
        assert task.args == ("x", "y")

    def test_string_priority_is_coerced(self):
        """Test that priority strings become Priority members."""
        task = Task(id="t", prompt_key="p", priority="high")
        assert task.priority == Priority.HIGH

    def test_invalid_priority_rejected(self):
        """Test that an unknown priority raises."""
        with pytest.raises(ValueError):
            Task(id="t", prompt_key="p", priority="urgent")


class TestDispatch:
    """Tests for ParallelTaskScheduler.dispatch."""

    def test_one_result_per_task(self, recording_call):
        """Test that result count and ids match the submitted tasks."""
        tasks = _tasks(["a", "b", "c", "d", "e", "f", "g"])
        scheduler = ParallelTaskScheduler(recording_call())

        results = scheduler.dispatch(tasks, concurrency_limit=3)

        assert len(results) == len(tasks)
        assert sorted(r.id for r in results) == sorted(t.id for t in tasks)

    def test_empty_batch(self, recording_call):
        """Test that an empty batch returns no results."""
        scheduler = ParallelTaskScheduler(recording_call())
        assert scheduler.dispatch([]) == []

    def test_payload_and_duration_on_success(self, recording_call):
        """Test that successful results carry the payload and a duration."""
        stub = recording_call(responses={"a": {"content": "<p>x</p>"}})
        scheduler = ParallelTaskScheduler(stub)

        result = scheduler.dispatch(_tasks(["a"]))[0]

        assert result.success is True
        assert result.payload == {"content": "<p>x</p>"}
        assert result.error is None
        assert result.duration >= 0

    def test_call_receives_prompt_args_and_model(self, recording_call):
        """Test that the collaborator gets the task's prompt key, args and model."""
        stub = recording_call()
        scheduler = ParallelTaskScheduler(stub)

        scheduler.dispatch(_tasks(["a"]))

        assert stub.calls == [("generate_content", "a", "m")]

    def test_high_priority_dispatched_before_low(self, recording_call):
        """Test that every high task is called before any medium or low task."""
        low = _tasks(["l1", "l2"], Priority.LOW)
        medium = _tasks(["m1", "m2"], Priority.MEDIUM)
        high = _tasks(["h1", "h2", "h3"], Priority.HIGH)
        stub = recording_call()
        scheduler = ParallelTaskScheduler(stub, concurrency_limit=2)

        results = scheduler.dispatch(low + medium + high)

        order = stub.subjects
        assert set(order[:3]) == {"h1", "h2", "h3"}
        assert set(order[3:5]) == {"m1", "m2"}
        assert set(order[5:]) == {"l1", "l2"}
        assert [r.id for r in results] == ["h1", "h2", "h3", "m1", "m2", "l1", "l2"]

    def test_windows_of_two_for_five_tasks(self):
        """Test that a limit of 2 splits five tasks into windows of 2, 2 and 1."""
        started = []
        finished = []
        lock = threading.Lock()

        def call(prompt_key, args, model):
            with lock:
                started.append((args[0], len(finished)))
            time.sleep(0.05)
            with lock:
                finished.append(args[0])
            return args[0]

        scheduler = ParallelTaskScheduler(call)
        scheduler.dispatch(_tasks(["a", "b", "c", "d", "e"]), concurrency_limit=2)

        # How many tasks had finished when each task started, grouped by window
        finished_at_start = {task_id: done for task_id, done in started}
        assert finished_at_start["a"] == 0 and finished_at_start["b"] == 0
        assert finished_at_start["c"] == 2 and finished_at_start["d"] == 2
        assert finished_at_start["e"] == 4

    def test_concurrency_never_exceeds_limit(self):
        """Test that no more than the limit run at once."""
        probe = ConcurrencyProbe()
        scheduler = ParallelTaskScheduler(probe)

        scheduler.dispatch(_tasks([str(i) for i in range(9)]), concurrency_limit=3)

        assert 1 <= probe.peak <= 3

    def test_failure_isolated_from_siblings(self, recording_call):
        """Test that a failing task does not affect others in its window."""
        stub = recording_call(failures={"b": RuntimeError("rate limited")})
        scheduler = ParallelTaskScheduler(stub)

        results = {r.id: r for r in scheduler.dispatch(_tasks(["a", "b", "c"]))}

        assert results["a"].success and results["c"].success
        assert results["b"].success is False
        assert results["b"].payload is None
        assert results["b"].error == "rate limited"

    def test_failure_without_message_uses_fallback(self, recording_call):
        """Test that an empty failure description is replaced."""
        stub = recording_call(failures={"a": RuntimeError()})
        scheduler = ParallelTaskScheduler(stub)

        result = scheduler.dispatch(_tasks(["a"]))[0]

        assert result.error == FALLBACK_ERROR

    def test_failure_outside_call_has_zero_duration(self, recording_call, monkeypatch):
        """Test that a failure before timing is reported with zero duration."""
        scheduler = ParallelTaskScheduler(recording_call())

        def broken(task):
            raise RuntimeError("")

        monkeypatch.setattr(scheduler, "_execute_task", broken)
        result = scheduler.dispatch(_tasks(["a"]))[0]

        assert result.success is False
        assert result.duration == 0.0
        assert result.error == UNKNOWN_ERROR

    def test_invalid_limit_rejected(self, recording_call):
        """Test that a limit below one raises."""
        with pytest.raises(ValueError):
            ParallelTaskScheduler(recording_call(), concurrency_limit=0)

        scheduler = ParallelTaskScheduler(recording_call())
        with pytest.raises(ValueError):
            scheduler.dispatch(_tasks(["a"]), concurrency_limit=0)


class TestStats:
    """Tests for scheduler statistics."""

    def test_empty_stats(self, recording_call):
        """Test stats before any dispatch."""
        stats = ParallelTaskScheduler(recording_call()).get_stats()
        assert stats.total_processed == 0
        assert stats.success_rate == 0.0

    def test_stats_accumulate_across_batches(self, recording_call):
        """Test that stats cover every batch dispatched so far."""
        stub = recording_call(failures={"b": RuntimeError("boom")})
        scheduler = ParallelTaskScheduler(stub)

        scheduler.dispatch(_tasks(["a", "b"]))
        scheduler.dispatch(_tasks(["c", "d"]))
        stats = scheduler.get_stats()

        assert stats.total_processed == 4
        assert stats.success_rate == pytest.approx(75.0)
        assert stats.avg_duration >= 0


class TestHelpers:
    """Tests for grouping, chunking and task creation."""

    def test_group_by_priority_skips_empty_groups(self):
        """Test that only non-empty groups are returned, in dispatch order."""
        tasks = _tasks(["l"], Priority.LOW) + _tasks(["h"], Priority.HIGH)
        groups = group_by_priority(tasks)
        assert [p for p, _ in groups] == [Priority.HIGH, Priority.LOW]

    def test_chunk_tasks(self):
        """Test window sizes from chunking."""
        windows = chunk_tasks(_tasks(["a", "b", "c", "d", "e"]), 2)
        assert [len(w) for w in windows] == [2, 2, 1]

    def test_create_tasks_priorities(self, sample_items):
        """Test that leading items are high priority and the rest medium."""
        tasks = create_tasks(sample_items, "generate_content", "m", high_priority_count=2)

        assert [t.priority for t in tasks] == [Priority.HIGH, Priority.HIGH, Priority.MEDIUM]
        assert [t.id for t in tasks] == [
            "generate_content-a", "generate_content-b", "generate_content-c",
        ]
        assert tasks[0].args == (sample_items[0],)

    def test_create_tasks_uses_index_without_id(self):
        """Test that items without an id fall back to their index."""
        tasks = create_tasks(["one", "two"], "analyze", "m")
        assert [t.id for t in tasks] == ["analyze-0", "analyze-1"]

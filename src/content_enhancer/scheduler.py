"""
Bounded-concurrency dispatcher for content-generation tasks.

Tasks are grouped by priority (high, medium, low) and each group is split
into windows of at most ``concurrency_limit`` tasks. Windows run one after
the other; the tasks inside a window run concurrently on a worker pool and
the whole window is collected before the next one starts. A failing task
is reported as a failed TaskResult and never affects its siblings.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional, Sequence

from .models import Priority, SchedulerStats, Task, TaskResult

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
FALLBACK_ERROR = "AI call failed"
UNKNOWN_ERROR = "Unknown error"

# call(prompt_key, args, model) -> payload, raises on failure
CallFn = Callable[[str, list, str], Any]


def _describe_error(error: BaseException, fallback: str) -> str:
    """Return a non-empty description for a failure."""
    message = str(error).strip()
    return message or fallback


class ParallelTaskScheduler:
    """
    Dispatch tasks to the generative backend under a concurrency budget.

    The scheduler never retries and never raises for a task failure; every
    submitted task produces exactly one TaskResult.
    """

    def __init__(self, call: CallFn, concurrency_limit: int = DEFAULT_CONCURRENCY):
        """
        Initialize the scheduler.

        Args:
            call: Generative call collaborator, ``call(prompt_key, args, model)``.
            concurrency_limit: Default window width.
        """
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")
        self._call = call
        self.concurrency_limit = concurrency_limit
        self._history: list[TaskResult] = []

    def dispatch(
        self,
        tasks: Sequence[Task],
        concurrency_limit: Optional[int] = None,
    ) -> list[TaskResult]:
        """
        Run every task and return one result per task.

        Results come back group by group (high, medium, low); inside a group
        they follow submission order.

        Args:
            tasks: Tasks to run. Identifiers must be unique within the batch.
            concurrency_limit: Window width for this batch, defaults to the
                scheduler's limit.

        Returns:
            List of TaskResult, same length as ``tasks``.
        """
        limit = concurrency_limit if concurrency_limit is not None else self.concurrency_limit
        if limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {limit}")

        results: list[TaskResult] = []
        if not tasks:
            return results

        with ThreadPoolExecutor(max_workers=limit) as pool:
            for priority, group in group_by_priority(tasks):
                windows = chunk_tasks(group, limit)
                logger.debug(
                    f"Dispatching {len(group)} {priority.value}-priority tasks "
                    f"in {len(windows)} window(s)"
                )
                for window in windows:
                    results.extend(self._run_window(pool, window))

        self._history.extend(results)
        return results

    def _run_window(self, pool: ThreadPoolExecutor, window: list[Task]) -> list[TaskResult]:
        """Fan a window out to the pool and wait for every task in it."""
        futures = [pool.submit(self._execute_task, task) for task in window]
        window_results = []

        for task, future in zip(window, futures):
            try:
                window_results.append(future.result())
            except Exception as e:
                # Failure outside the timed call, no duration available
                logger.warning(f"Task {task.id} failed before timing: {e}")
                window_results.append(TaskResult(
                    id=task.id,
                    success=False,
                    payload=None,
                    error=_describe_error(e, UNKNOWN_ERROR),
                    duration=0.0,
                ))

        return window_results

    def _execute_task(self, task: Task) -> TaskResult:
        """Call the backend for one task, timing the call."""
        start = time.perf_counter()
        try:
            payload = self._call(task.prompt_key, list(task.args), task.model)
        except Exception as e:
            duration = (time.perf_counter() - start) * 1000
            logger.warning(f"Task {task.id} failed after {duration:.0f}ms: {e}")
            return TaskResult(
                id=task.id,
                success=False,
                payload=None,
                error=_describe_error(e, FALLBACK_ERROR),
                duration=duration,
            )

        duration = (time.perf_counter() - start) * 1000
        return TaskResult(id=task.id, success=True, payload=payload, duration=duration)

    def get_stats(self) -> SchedulerStats:
        """Aggregate figures over every result produced so far."""
        if not self._history:
            return SchedulerStats()

        total = len(self._history)
        successful = sum(1 for r in self._history if r.success)
        total_duration = sum(r.duration for r in self._history)
        return SchedulerStats(
            total_processed=total,
            avg_duration=total_duration / total,
            success_rate=successful / total * 100,
        )


def group_by_priority(tasks: Iterable[Task]) -> list[tuple[Priority, list[Task]]]:
    """Split tasks into non-empty priority groups in dispatch order."""
    tasks = list(tasks)
    groups = []
    for priority in Priority.dispatch_order():
        group = [t for t in tasks if t.priority == priority]
        if group:
            groups.append((priority, group))
    return groups


def chunk_tasks(tasks: Sequence[Task], size: int) -> list[list[Task]]:
    """Split tasks into consecutive windows of at most ``size``."""
    return [list(tasks[i:i + size]) for i in range(0, len(tasks), size)]


def create_tasks(
    items: Sequence[Any],
    operation: str,
    model: str,
    high_priority_count: int = 3,
) -> list[Task]:
    """
    Build one task per content item.

    The first ``high_priority_count`` items are dispatched at high priority,
    the rest at medium.

    Args:
        items: Content items; each becomes the single argument of its task.
        operation: Prompt key for every task.
        model: Model selector for every task.
        high_priority_count: Number of leading items given high priority.

    Returns:
        List of Task objects with ids ``"{operation}-{item id or index}"``.
    """
    tasks = []
    for index, item in enumerate(items):
        item_id = getattr(item, "id", None)
        if item_id is None and isinstance(item, dict):
            item_id = item.get("id")
        tasks.append(Task(
            id=f"{operation}-{item_id if item_id else index}",
            prompt_key=operation,
            args=(item,),
            model=model,
            priority=Priority.HIGH if index < high_priority_count else Priority.MEDIUM,
        ))
    return tasks

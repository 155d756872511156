"""Task scheduling and orchestration over a TaskStore."""

import logging
import threading
from typing import List, Optional, Tuple

from ..core.exceptions import TaskNotFoundError, TaskNotPausedError
from ..core.logger import TaskLogger
from ..models.state import TaskStatistics
from ..models.task import Iteration, Task, TaskStatus
from ..state.store import TaskStore

logger = logging.getLogger(__name__)


def _sorted_by_order(tasks: List[Task]) -> List[Task]:
    # sorted() is stable, so tasks sharing an order keep their stored position.
    return sorted(tasks, key=lambda t: t.order)


class TaskManager:
    """
    Scheduling policy and task state operations for the control loop.

    Every public method holds the manager lock for its whole
    read-decide-write sequence, so a fetch/mutate/update is atomic with
    respect to other manager callers. The store keeps its own lock for
    callers (such as the display layer) that read it directly.
    """

    def __init__(self, store: TaskStore, task_logger: Optional[TaskLogger] = None):
        """
        Initialize task manager.

        Args:
            store: Task store to operate on
            task_logger: Optional logger for structured iteration records
        """
        self._store = store
        self._lock = threading.RLock()
        self.task_logger = task_logger

    @property
    def store(self) -> TaskStore:
        return self._store

    def load(self) -> None:
        with self._lock:
            self._store.load()

    def save(self) -> None:
        with self._lock:
            self._store.save()

    def _require(self, task_id: str) -> Task:
        task = self._store.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    # ---- scheduling ----

    def get_next(self) -> Optional[Task]:
        """
        Select the next task to run.

        Tasks are taken in ascending order. An in-progress task always wins,
        then a paused task, then a pending one.

        Returns:
            Copy of the selected task, or None if nothing is runnable
        """
        with self._lock:
            tasks = _sorted_by_order(self._store.tasks())

            for status in (TaskStatus.IN_PROGRESS, TaskStatus.PAUSED, TaskStatus.PENDING):
                for task in tasks:
                    if task.status == status:
                        return task
            return None

    def all(self) -> List[Task]:
        """All tasks sorted by order."""
        with self._lock:
            return _sorted_by_order(self._store.tasks())

    def get_by_id(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return self._store.get(task_id)

    def get_by_status(self, status: TaskStatus) -> List[Task]:
        with self._lock:
            return self._store.get_by_status(status)

    # ---- status transitions ----

    def mark_complete(self, task_id: str) -> None:
        """Mark a task completed. Raises TaskNotFoundError if absent."""
        with self._lock:
            task = self._require(task_id)
            task.mark_completed()
            self._store.update(task)
            logger.info("Task %s completed", task_id)

    def skip(self, task_id: str) -> None:
        """Mark a task skipped. Raises TaskNotFoundError if absent."""
        with self._lock:
            task = self._require(task_id)
            task.mark_skipped()
            self._store.update(task)
            logger.info("Task %s skipped", task_id)

    def pause(self, task_id: str) -> None:
        """Mark a task paused. Raises TaskNotFoundError if absent."""
        with self._lock:
            task = self._require(task_id)
            task.mark_paused()
            self._store.update(task)
            logger.info("Task %s paused", task_id)

    def fail(self, task_id: str) -> None:
        """Mark a task failed. Raises TaskNotFoundError if absent."""
        with self._lock:
            task = self._require(task_id)
            task.mark_failed()
            self._store.update(task)
            logger.info("Task %s failed", task_id)

    # ---- iterations ----

    def start_iteration(self, task_id: str) -> Iteration:
        """
        Start a new iteration on a task.

        Returns:
            Copy of the new iteration

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        with self._lock:
            task = self._require(task_id)

            if task.is_terminal():
                logger.warning("Starting iteration on terminal task %s (status: %s)", task_id, task.status)
            current = task.current_iteration()
            if current is not None and not current.is_complete():
                logger.warning(
                    "Starting iteration on task %s while iteration %d is still open",
                    task_id, current.number,
                )

            iteration = task.start_iteration()
            self._store.update(task)
            logger.debug("Task %s: iteration %d started", task_id, iteration.number)
            return iteration

    def end_iteration(self, task_id: str, result: str, output: str = "", session_id: str = "") -> Iteration:
        """
        Close the current iteration on a task.

        Returns:
            Copy of the closed iteration

        Raises:
            TaskNotFoundError: If the task does not exist
            NoActiveIterationError: If no iteration was started
            IterationAlreadyCompleteError: If the current iteration is closed
        """
        with self._lock:
            task = self._require(task_id)
            iteration = task.end_iteration(result, output, session_id)
            self._store.update(task)
            logger.debug("Task %s: iteration %d ended with %s", task_id, iteration.number, result)
            if self.task_logger is not None:
                self.task_logger.log_iteration(task, iteration)
            return iteration

    def resume(self, task_id: str) -> Iteration:
        """
        Resume a paused task by starting a new iteration.

        Raises:
            TaskNotFoundError: If the task does not exist
            TaskNotPausedError: If the task is not paused
        """
        with self._lock:
            task = self._require(task_id)
            if task.status != TaskStatus.PAUSED:
                status = task.status.value if isinstance(task.status, TaskStatus) else str(task.status)
                raise TaskNotPausedError(task_id, status)

            iteration = task.resume()
            self._store.update(task)
            logger.info("Task %s resumed with iteration %d", task_id, iteration.number)
            return iteration

    # ---- direct edits ----

    def add_task(self, task: Task) -> None:
        with self._lock:
            self._store.add(task)

    def update_task(self, task: Task) -> None:
        with self._lock:
            self._store.update(task)

    def reorder(self, ordered_ids: List[str]) -> None:
        """
        Renumber task orders from 1.

        Tasks named in ordered_ids come first, in that sequence. The rest
        follow in their current stored order. Each task is updated on its own,
        so a failure part-way leaves the earlier updates in place.

        Args:
            ordered_ids: Task IDs in the desired order; unknown IDs are ignored
        """
        with self._lock:
            tasks = self._store.tasks()
            by_id = {t.id: t for t in tasks}

            order = 1
            placed = set()
            for task_id in ordered_ids:
                task = by_id.get(task_id)
                if task is None or task_id in placed:
                    continue
                task.order = order
                self._store.update(task)
                placed.add(task_id)
                order += 1

            for task in tasks:
                if task.id in placed:
                    continue
                task.order = order
                self._store.update(task)
                order += 1

            logger.debug("Reordered %d tasks (%d explicitly placed)", len(tasks), len(placed))

    # ---- progress ----

    def count_remaining(self) -> int:
        """Tasks that are pending, in progress or paused."""
        with self._lock:
            return len([t for t in self._store.tasks() if not t.is_terminal()])

    def count_completed(self) -> int:
        with self._lock:
            return self._store.count_by_status(TaskStatus.COMPLETED)

    def count_total(self) -> int:
        with self._lock:
            return self._store.count()

    def has_remaining(self) -> bool:
        return self.count_remaining() > 0

    def progress(self) -> Tuple[int, int]:
        """Return (completed, total)."""
        with self._lock:
            tasks = self._store.tasks()
            completed = len([t for t in tasks if t.status == TaskStatus.COMPLETED])
            return completed, len(tasks)

    def statistics(self) -> TaskStatistics:
        with self._lock:
            return self._store.statistics()

    def log_progress(self) -> None:
        """Write a progress record through the task logger, if configured."""
        if self.task_logger is None:
            return
        stats = self.statistics()
        self.task_logger.log_progress(
            completed_tasks=stats.completed,
            total_tasks=stats.total,
            remaining_tasks=stats.remaining,
            failed_tasks=stats.failed,
            skipped_tasks=stats.skipped,
        )

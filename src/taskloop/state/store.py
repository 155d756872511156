"""JSON-file task store shared by the control loop and the display layer."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple, Union

from ..core.exceptions import (
    CorruptStoreError,
    DuplicateTaskError,
    StateError,
    TaskNotFoundError,
)
from ..core.locks import ReadWriteLock
from ..models.state import StoreMetadata, TaskStatistics
from ..models.task import Task, TaskStatus

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILENAME = "tasks.json"


class TaskStore:
    """
    Thread-safe, file-persisted collection of tasks keyed by ID.

    Readers share a lock and writers hold it exclusively. Tasks are cloned on
    the way in and on the way out, so callers never hold a reference into the
    stored collection. File I/O happens only in load() and save().
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize TaskStore. Does not touch the file; call load() or save().

        Args:
            path: Path to the JSON file backing this store
        """
        self._path = Path(path)
        self._lock = ReadWriteLock()
        self._metadata = StoreMetadata()
        self._tasks: List[Task] = []

    @classmethod
    def in_dir(cls, directory: Union[str, Path]) -> "TaskStore":
        """Create a store for the default tasks.json inside directory."""
        return cls(Path(directory) / DEFAULT_STORE_FILENAME)

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """
        Load tasks from the backing file.
        A missing file initializes an empty collection.

        Raises:
            CorruptStoreError: If the file content is malformed
            StateError: If the file exists but cannot be read
        """
        with self._lock.write_locked():
            try:
                with open(self._path, 'r', encoding='utf-8') as f:
                    raw = f.read()
            except FileNotFoundError:
                self._metadata = StoreMetadata()
                self._tasks = []
                logger.debug("Task store %s not found, starting empty", self._path)
                return
            except OSError as e:
                raise StateError(f"Failed to read task store {self._path}: {e}", original_error=e)

            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise CorruptStoreError(str(self._path), e)

            metadata, tasks = self._decode(data)
            self._metadata = metadata
            self._tasks = tasks
            logger.info("Loaded %d tasks from %s", len(tasks), self._path)

    def _decode(self, data: Any) -> Tuple[StoreMetadata, List[Task]]:
        if not isinstance(data, dict):
            raise CorruptStoreError(str(self._path), ValueError("top-level value must be an object"))
        tasks_data = data.get("tasks") or []
        metadata_data = data.get("metadata") or {}
        if not isinstance(tasks_data, list):
            raise CorruptStoreError(str(self._path), ValueError("'tasks' must be a list"))
        if not isinstance(metadata_data, dict):
            raise CorruptStoreError(str(self._path), ValueError("'metadata' must be an object"))

        try:
            metadata = StoreMetadata.from_dict(metadata_data)
            tasks = []
            for item in tasks_data:
                if not isinstance(item, dict):
                    raise ValueError(f"task entry must be an object, got {type(item).__name__}")
                tasks.append(Task.from_dict(item))
        except (TypeError, ValueError, AttributeError) as e:
            raise CorruptStoreError(str(self._path), e)
        return metadata, tasks

    def _encode(self) -> Dict[str, Any]:
        return {
            "metadata": self._metadata.to_dict(),
            "tasks": [t.to_dict() for t in self._tasks],
        }

    def save(self) -> None:
        """
        Write the whole collection to the backing file.
        Parent directories are created as needed; the file is replaced atomically.

        Raises:
            StateError: If the file cannot be written
        """
        with self._lock.write_locked():
            self._metadata.updated_at = datetime.now(timezone.utc)
            payload = json.dumps(self._encode(), indent=2, ensure_ascii=False)

            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=str(self._path.parent), prefix=f".{self._path.name}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, 'w', encoding='utf-8') as f:
                        f.write(payload)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, self._path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except OSError as e:
                raise StateError(f"Failed to write task store {self._path}: {e}", original_error=e)

            logger.debug("Saved %d tasks to %s", len(self._tasks), self._path)

    def metadata(self) -> StoreMetadata:
        """Return a copy of the store metadata."""
        with self._lock.read_locked():
            return StoreMetadata(
                version=self._metadata.version,
                created_at=self._metadata.created_at,
                updated_at=self._metadata.updated_at,
            )

    # ---- writes ----

    def _index_of(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return -1

    def add(self, task: Task) -> None:
        """
        Add a task.

        A task with order 0 is placed after all existing tasks (max order + 1).
        Any other order is kept as given, even if another task already uses it.

        Raises:
            DuplicateTaskError: If a task with the same ID exists
        """
        with self._lock.write_locked():
            if self._index_of(task.id) >= 0:
                raise DuplicateTaskError(task.id)

            stored = task.clone()
            if stored.order == 0 and self._tasks:
                stored.order = max(t.order for t in self._tasks) + 1

            self._tasks.append(stored)

    def add_all(self, tasks: List[Task]) -> None:
        """
        Add tasks one by one.

        Not atomic: on the first duplicate the error is raised and the tasks
        added before it stay in the store.

        Raises:
            DuplicateTaskError: On the first task whose ID already exists
        """
        for task in tasks:
            self.add(task)

    def update(self, task: Task) -> None:
        """
        Replace the stored task with a copy of the given one.

        Raises:
            TaskNotFoundError: If the task ID is not in the store
        """
        with self._lock.write_locked():
            index = self._index_of(task.id)
            if index < 0:
                raise TaskNotFoundError(task.id)
            self._tasks[index] = task.clone()

    def delete(self, task_id: str) -> None:
        """
        Remove a task.

        Raises:
            TaskNotFoundError: If the task ID is not in the store
        """
        with self._lock.write_locked():
            index = self._index_of(task_id)
            if index < 0:
                raise TaskNotFoundError(task_id)
            del self._tasks[index]

    def clear(self) -> None:
        """Remove all tasks."""
        with self._lock.write_locked():
            self._tasks = []

    def set_tasks(self, tasks: List[Task]) -> None:
        """Replace all tasks with copies of the given list, as-is."""
        with self._lock.write_locked():
            self._tasks = [t.clone() for t in tasks]

    # ---- reads ----

    def exists(self, task_id: str) -> bool:
        with self._lock.read_locked():
            return self._index_of(task_id) >= 0

    def get(self, task_id: str) -> Optional[Task]:
        """Return a copy of the task, or None if not found."""
        with self._lock.read_locked():
            index = self._index_of(task_id)
            if index < 0:
                return None
            return self._tasks[index].clone()

    def tasks(self) -> List[Task]:
        """Return copies of all tasks in stored order."""
        with self._lock.read_locked():
            return [t.clone() for t in self._tasks]

    def count(self) -> int:
        with self._lock.read_locked():
            return len(self._tasks)

    def count_by_status(self, status: TaskStatus) -> int:
        with self._lock.read_locked():
            return len([t for t in self._tasks if t.status == status])

    def get_by_status(self, status: TaskStatus) -> List[Task]:
        """Return copies of all tasks with the given status, in stored order."""
        with self._lock.read_locked():
            return [t.clone() for t in self._tasks if t.status == status]

    def statistics(self) -> TaskStatistics:
        """Return per-status counts."""
        with self._lock.read_locked():
            return TaskStatistics.from_tasks(self._tasks)
